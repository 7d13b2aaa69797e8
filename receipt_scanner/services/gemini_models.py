from typing import NamedTuple


class GeminiModel(NamedTuple):
    id: str
    label: str


GEMINI_MODELS: tuple[GeminiModel, ...] = (
    GeminiModel("gemini-3-flash-preview", "Gemini 3 Flash (Preview)"),
    GeminiModel("gemini-2.5-flash", "Gemini 2.5 Flash"),
    GeminiModel("gemini-2.0-flash", "Gemini 2.0 Flash (Deprecated)"),
    GeminiModel("gemini-1.5-flash", "Gemini 1.5 Flash"),
    GeminiModel("gemini-1.5-flash-8b", "Gemini 1.5 Flash 8B"),
)

GEMINI_MODEL_IDS = frozenset(m.id for m in GEMINI_MODELS)

DEFAULT_MODEL = "gemini-2.5-flash"


def is_supported_model(model: str) -> bool:
    return model in GEMINI_MODEL_IDS
