"""Photo ingestion pipeline: validate -> rename -> resize -> persist.

- The declared mime type must be image/*; anything else is rejected before
  a single byte is decoded.
- Stored name is `<uuid4>.<mime subtype>`; the client filename is never used,
  so names can't collide or escape the uploads directory.
- Images are resized to a fixed width with proportional height (no upscaling
  guard: small images are enlarged too).
- Files are written to a temp name and renamed into place, so a failed write
  never leaves a partial file under the final name.
"""

import asyncio
import io
import logging
import os
from pathlib import Path
import re
import tempfile
from uuid import uuid4

from PIL import Image, UnidentifiedImageError

from storefinder.services.errors import DecodeError, PersistenceError, UnsupportedMediaType
from storefinder.settings import get_settings

logger = logging.getLogger("uvicorn.error")

IMAGE_MIME_PREFIX = "image/"
_EXTENSION_RE = re.compile(r"[a-z0-9][a-z0-9.+-]*")

# Pillow modes each output format can store without conversion.
_FORMAT_MODES = {
    "JPEG": {"RGB", "L", "CMYK"},
    "BMP": {"RGB", "L", "1", "P"},
}


def photo_extension(mime_type: str | None) -> str:
    """Validate the declared mime type and return the file extension.

    Raises:
        UnsupportedMediaType: If the type isn't image/* or the subtype isn't filename-safe.
    """
    mime = (mime_type or "").strip().lower()
    if not mime.startswith(IMAGE_MIME_PREFIX):
        raise UnsupportedMediaType(
            "That filetype isn't allowed!",
            detail={"mime_type": mime_type},
        )
    extension = mime.split("/")[1].split(";")[0].strip()
    if not _EXTENSION_RE.fullmatch(extension) or ".." in extension:
        raise UnsupportedMediaType(
            "That filetype isn't allowed!",
            detail={"mime_type": mime_type},
        )
    return extension


def new_photo_name(extension: str) -> str:
    return f"{uuid4()}.{extension}"


def resize_to_width(image: Image.Image, width: int) -> Image.Image:
    """Resize to `width`, scaling height to keep the aspect ratio."""
    src_width, src_height = image.size
    height = max(1, round(src_height * width / src_width))
    return image.resize((width, height), Image.Resampling.LANCZOS)


def _decode(raw: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Could not decode image: {e}") from e
    return image


def _output_format(extension: str, image: Image.Image) -> str:
    fmt = Image.registered_extensions().get(f".{extension}")
    return fmt or image.format or "PNG"


def _encode(image: Image.Image, fmt: str) -> bytes:
    """Encode to `fmt` in memory.

    Raises:
        UnsupportedMediaType: Pillow has no writer for the format, or can't
            store the image's mode in it.
    """
    allowed = _FORMAT_MODES.get(fmt)
    if allowed is not None and image.mode not in allowed:
        image = image.convert("RGB")

    buf = io.BytesIO()
    try:
        image.save(buf, format=fmt)
    except (KeyError, ValueError, OSError) as e:
        raise UnsupportedMediaType(
            "That filetype isn't allowed!",
            detail={"format": fmt, "reason": str(e)},
        ) from e
    return buf.getvalue()


def _write(data: bytes, destination: Path) -> None:
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=destination.parent, prefix=".upload-", suffix=".tmp")
    except OSError as e:
        raise PersistenceError(f"Could not write photo: {e}") from e

    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, destination)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise PersistenceError(f"Could not write photo: {e}") from e


def _process(raw: bytes, extension: str, destination: Path, width: int) -> None:
    image = _decode(raw)
    fmt = _output_format(extension, image)
    resized = resize_to_width(image, width)
    _write(_encode(resized, fmt), destination)


async def ingest_photo(
    raw: bytes | None,
    mime_type: str | None,
    *,
    upload_dir: str | Path | None = None,
    width: int | None = None,
) -> str | None:
    """Validate, rename, resize and persist an uploaded photo.

    Args:
        raw: Uploaded bytes. None/empty means no file was supplied.
        mime_type: Declared content type (e.g. "image/png").
        upload_dir: Destination directory (defaults to settings.uploads_dir).
        width: Target width (defaults to settings.photo_width).

    Returns:
        Stored filename, or None when no file was supplied.

    Raises:
        UnsupportedMediaType: Declared type isn't an image or has no Pillow writer.
        DecodeError: Bytes aren't a readable image.
        PersistenceError: Writing the file failed.
    """
    if not raw:
        return None

    extension = photo_extension(mime_type)

    settings = get_settings()
    directory = Path(upload_dir if upload_dir is not None else settings.uploads_dir)
    target_width = width or settings.photo_width

    filename = new_photo_name(extension)
    await asyncio.to_thread(_process, raw, extension, directory / filename, target_width)
    logger.info(f"Stored photo {filename} ({len(raw)} bytes in)")
    return filename


async def discard_photo(filename: str | None, *, upload_dir: str | Path | None = None) -> None:
    """Remove a stored photo that no store references (failed create, replaced photo)."""
    if not filename:
        return
    directory = Path(upload_dir if upload_dir is not None else get_settings().uploads_dir)
    path = directory / Path(filename).name
    try:
        await asyncio.to_thread(path.unlink)
    except FileNotFoundError:
        return
    except OSError as e:
        logger.warning(f"Failed to remove orphaned photo {filename}: {e}")
