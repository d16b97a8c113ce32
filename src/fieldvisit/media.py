"""Photo preparation before upload"""
import time
from io import BytesIO

import structlog
from PIL import Image, ImageOps

from fieldvisit.exceptions import CameraUnavailable
from fieldvisit.models import UploadFile

logger = structlog.get_logger(__name__)


def prepare_photo(
    raw: bytes,
    max_width: int = 480,
    quality: int = 50,
    flip: bool = False,
) -> bytes:
    """Resize to at most ``max_width`` pixels wide, optionally mirror, encode as JPEG."""
    try:
        image = Image.open(BytesIO(raw))
        image.load()
    except (OSError, ValueError) as e:
        logger.error("Failed to read captured photo", error=str(e))
        raise CameraUnavailable("Terjadi kesalahan saat memproses foto.") from e

    # Respect the camera orientation before resizing
    image = ImageOps.exif_transpose(image)

    if image.width > max_width:
        height = max(1, round(image.height * max_width / image.width))
        image = image.resize((max_width, height), Image.Resampling.LANCZOS)

    if flip:
        image = ImageOps.mirror(image)

    if image.mode != "RGB":
        image = image.convert("RGB")

    buffer = BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    prepared = buffer.getvalue()

    logger.debug(
        "Photo prepared",
        width=image.width,
        height=image.height,
        size_bytes=len(prepared),
        flipped=flip,
    )
    return prepared


def photo_upload(prefix: str, content: bytes) -> UploadFile:
    """Wrap prepared JPEG bytes as ``<prefix>-<millis>.jpg``."""
    return UploadFile(
        filename=f"{prefix}-{int(time.time() * 1000)}.jpg",
        content=content,
        content_type="image/jpeg",
    )
