"""Downscale and re-encode receipt images before they are sent to the model."""

import base64
import io
import math
from dataclasses import dataclass
from datetime import datetime
from loguru import logger
from PIL import Image, ImageOps, UnidentifiedImageError
from .errors import ImageDecodeError

OUTPUT_FORMAT = "JPEG"
OUTPUT_MIME_TYPE = "image/jpeg"
DEFAULT_MAX_WIDTH = 1024
DEFAULT_QUALITY = 80

_EXIF_IFD = 0x8769
_EXIF_DATETIME_ORIGINAL = 36867
_EXIF_DATETIME = 306
_EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"


@dataclass(frozen=True)
class CompressedImage:
    data: bytes
    width: int
    height: int
    mime_type: str = OUTPUT_MIME_TYPE
    captured_at: datetime | None = None

    @property
    def base64_data(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def preview_url(self) -> str:
        """data: URL of the re-encoded image, renderable by a browser"""
        return f"data:{self.mime_type};base64,{self.base64_data}"


def scaled_size(width: int, height: int, max_width: int) -> tuple[int, int]:
    if width <= max_width:
        return width, height
    # half-up rounding, as a canvas resize would do
    return max_width, math.floor(height * max_width / width + 0.5)


def read_capture_time(img: Image.Image) -> datetime | None:
    """Photo capture time from EXIF, if the image carries one."""
    try:
        exif = img.getexif()
    except Exception as e:
        logger.debug(f"Could not read EXIF data: {e}")
        return None

    raw = exif.get_ifd(_EXIF_IFD).get(_EXIF_DATETIME_ORIGINAL) or exif.get(_EXIF_DATETIME)
    if not raw:
        return None
    try:
        return datetime.strptime(str(raw).strip("\x00 "), _EXIF_DATETIME_FORMAT)
    except ValueError:
        logger.debug(f"Ignoring unparseable EXIF timestamp: {raw!r}")
        return None


def compress_image(
    image_bytes: bytes,
    max_width: int = DEFAULT_MAX_WIDTH,
    quality: int = DEFAULT_QUALITY,
) -> CompressedImage:
    """
    Decode any raster image, shrink it to max_width and re-encode it as JPEG.

    Args:
        image_bytes: Raw image data in any format Pillow can decode
        max_width: Images wider than this are scaled down proportionally
        quality: JPEG quality factor (1-95)

    Returns:
        CompressedImage with the JPEG payload and its dimensions

    Raises:
        ImageDecodeError: If the bytes are not a decodable image
    """
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Could not decode image: {e}") from e

    captured_at = read_capture_time(img)

    # Apply EXIF orientation so width means the width the user sees
    img = ImageOps.exif_transpose(img)

    width, height = img.size
    new_size = scaled_size(width, height, max_width)
    if new_size != (width, height):
        img = img.resize(new_size, Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    try:
        img.convert("RGB").save(buffer, format=OUTPUT_FORMAT, quality=quality)
    except (OSError, ValueError) as e:
        raise ImageDecodeError(f"Could not re-encode image: {e}") from e

    logger.debug(
        "Image compressed",
        original_size=(width, height),
        output_size=new_size,
        input_bytes=len(image_bytes),
        output_bytes=buffer.tell(),
    )

    return CompressedImage(
        data=buffer.getvalue(),
        width=new_size[0],
        height=new_size[1],
        captured_at=captured_at,
    )
