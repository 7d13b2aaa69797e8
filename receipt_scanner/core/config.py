
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("receipt-scanner", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")

    # Gemini
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_GEMINI_API_KEY"),
    )
    gemini_base_url: str = Field("https://generativelanguage.googleapis.com", alias="GEMINI_BASE_URL")
    gemini_timeout_seconds: float = Field(60.0, alias="GEMINI_TIMEOUT_SECONDS")

    # Upload limits
    max_upload_images: int = Field(3, alias="MAX_UPLOAD_IMAGES")
    max_image_bytes: int = Field(10 * 1024 * 1024, alias="MAX_IMAGE_BYTES")  # checked before compression

    # Image compression
    compress_images: bool = Field(True, alias="COMPRESS_IMAGES")
    image_max_width: int = Field(1024, alias="IMAGE_MAX_WIDTH")
    image_jpeg_quality: int = Field(80, alias="IMAGE_JPEG_QUALITY")

    # CORS allowed origins (comma-separated list)
    cors_origins: str = Field("http://localhost:3000,http://127.0.0.1:3000", alias="CORS_ORIGINS")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "populate_by_name": True}

settings = Settings()
