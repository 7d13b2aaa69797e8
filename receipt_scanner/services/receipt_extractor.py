from loguru import logger
from ..models.receipt import RECEIPT_CATEGORIES, ReceiptData
from .errors import EmptyResponseError, UnsupportedModelError
from .gemini_client import GeminiClient
from .gemini_models import DEFAULT_MODEL, is_supported_model
from .response_normalizer import normalize_response

RECEIPT_PROMPT = f"""Analyze this receipt image and extract the following information as JSON:
- storeName: the name of the store/restaurant (if visible)
- date: the purchase date in YYYY-MM-DD format (if visible, otherwise omit)
- items: array of line items, each with name (string), quantity (number), and price (number, the total price for that line item)
- subtotal: the subtotal amount before tax (if visible, otherwise omit)
- tax: the tax amount (if visible, otherwise omit)
- total: the total amount
- category: one of {", ".join(RECEIPT_CATEGORIES)}

If the receipt has no itemized lines (for example a payment confirmation), return an empty items array.
Return ONLY valid JSON, no markdown or code blocks.
If you can't determine a quantity, default to 1.
Prices should be numbers without currency symbols."""


class ReceiptExtractor:
    """Extracts structured receipt data from one image with a single model call."""

    def __init__(self, client: GeminiClient, prompt: str = RECEIPT_PROMPT):
        self.client = client
        self.prompt = prompt

    async def extract(self, image_b64: str, mime_type: str, model: str = DEFAULT_MODEL) -> ReceiptData:
        """
        Raises:
            UnsupportedModelError: Before any call, if model is not in the enumerated set
            EmptyResponseError: The model returned no text
            ResponseParseError / ReceiptSchemaError: From response normalization
            ModelNotConfiguredError / ModelRequestError: From the transport
        """
        if not is_supported_model(model):
            raise UnsupportedModelError(model)

        text = await self.client.generate(model, image_b64, mime_type, self.prompt)
        if not text or not text.strip():
            raise EmptyResponseError()

        receipt = normalize_response(text)
        logger.info(
            "Receipt extracted",
            model=model,
            store=receipt.store_name,
            items=len(receipt.items),
            total=receipt.total,
        )
        return receipt
