# image_preprocessing.py
"""
Fixed preprocessing applied to every upload before it is sent for prediction:
  1) cover-fit resize to 224×224 (never upscale)
  2) contrast stretch to the full intensity range
  3) light Gaussian blur to suppress sensor / compression noise
The declared media type of the input data URI is carried over unchanged.
"""
import io
import logging

from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from backend.app.config import BLUR_RADIUS, NORMALIZE_CUTOFF, TARGET_SIZE
from backend.app.errors import ImageDecodeError
from backend.app.schemas import ImageBlob

logger = logging.getLogger("skinvision.preprocess")

# Decoded formats Pillow cannot write back as-is (multi-picture JPEGs from phones)
_SAVE_FORMATS = {"MPO": "JPEG"}


def _load(raw: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Could not decode image: {e}") from e
    return img


def _cover_resize(img: Image.Image, size: int = TARGET_SIZE) -> Image.Image:
    """Scale to fill size×size and centre-crop; images smaller than size keep their scale."""
    w, h = img.size
    if w >= size and h >= size:
        return ImageOps.fit(img, (size, size), method=Image.Resampling.LANCZOS)

    # Upscaling suppressed: only crop whatever exceeds the target box
    cw, ch = min(w, size), min(h, size)
    left = (w - cw) // 2
    top = (h - ch) // 2
    return img.crop((left, top, left + cw, top + ch))


def _autocontrast(img: Image.Image) -> Image.Image:
    """Stretch luminance to the full range, keeping hue and any alpha channel."""
    if img.mode in ("RGBA", "LA"):
        alpha = img.getchannel("A")
        base = img.convert("RGB" if img.mode == "RGBA" else "L")
        out = ImageOps.autocontrast(base, cutoff=NORMALIZE_CUTOFF, preserve_tone=True)
        out.putalpha(alpha)
        return out
    return ImageOps.autocontrast(img, cutoff=NORMALIZE_CUTOFF, preserve_tone=True)


def _to_working_mode(img: Image.Image) -> Image.Image:
    # autocontrast / blur only handle L, RGB (+alpha) images
    if img.mode in ("L", "RGB", "RGBA", "LA"):
        return img
    if img.mode.startswith("I") or img.mode == "F":
        # 16-bit / 32-bit samples: bring into 0..255 before dropping to 8 bits
        if img.mode != "F":
            img = img.convert("I")
        if img.getextrema()[1] > 255:
            img = img.point(lambda v: v * (1 / 256))
        return img.convert("L")
    if img.mode == "P" and "transparency" in img.info:
        return img.convert("RGBA")
    return img.convert("RGB")


def _encode(img: Image.Image, fmt: str) -> bytes:
    if fmt == "JPEG" and img.mode not in ("L", "RGB"):
        img = img.convert("RGB")
    buf = io.BytesIO()
    try:
        img.save(buf, format=fmt)
    except (OSError, ValueError, KeyError) as e:
        raise ImageDecodeError(f"Could not encode image as {fmt}: {e}") from e
    return buf.getvalue()


def normalize_image(blob: ImageBlob) -> ImageBlob:
    """ImageBlob → resized / normalized / blurred ImageBlob with the same media type."""
    img = _load(blob.decode())
    fmt = _SAVE_FORMATS.get(img.format, img.format) or "PNG"
    src_size = img.size

    img = _to_working_mode(img)
    img = _cover_resize(img)
    img = _autocontrast(img)
    img = img.filter(ImageFilter.GaussianBlur(radius=BLUR_RADIUS))

    raw = _encode(img, fmt)
    logger.info(f"[preprocess] {blob.media_type} {src_size[0]}x{src_size[1]} -> "
                f"{img.size[0]}x{img.size[1]} ({fmt}, {len(raw)} bytes)")
    return ImageBlob.from_bytes(blob.media_type, raw)


def preprocess_data_uri(photo_data_uri: str) -> str:
    """Data URI in, preprocessed data URI out."""
    return normalize_image(ImageBlob.from_data_uri(photo_data_uri)).to_data_uri()
