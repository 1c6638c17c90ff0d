"""Best-effort lossy image compression for embedding images in share links.

Compression is an optimisation only: any failure returns the caller's input
unchanged, and nothing raises past ``ImageCompressor.compress()``.
"""

from __future__ import annotations

from collections.abc import Mapping
from io import BytesIO
from typing import TypeVar

from PIL import Image

from showroom.assets.datauri import is_data_uri, parse_data_uri, to_data_uri

ImageInput = TypeVar("ImageInput", bytes, str)

DEFAULT_MAX_DIMENSION_PX = 1200
DEFAULT_QUALITY = 0.72

_OUTPUT_MIME = "image/jpeg"


def _pillow_quality(quality: float) -> int:
    """Map a 0–1 quality factor onto Pillow's JPEG scale (1–95)."""
    return max(1, min(95, round(quality * 100)))


def _target_size(width: int, height: int, max_dim: int) -> tuple[int, int]:
    """Scale (width, height) so the long edge is at most *max_dim*, keeping aspect ratio."""
    long_edge = max(width, height)
    if long_edge <= max_dim:
        return width, height
    ratio = max_dim / long_edge
    return max(1, round(width * ratio)), max(1, round(height * ratio))


class ImageCompressor:
    """Downscale and re-encode images as JPEG.

    Args:
        max_dimension_px: Default long-edge limit in pixels.
        quality: Default JPEG quality factor in ``(0, 1]``.
    """

    def __init__(
        self,
        max_dimension_px: int = DEFAULT_MAX_DIMENSION_PX,
        quality: float = DEFAULT_QUALITY,
    ) -> None:
        self.max_dimension_px = max_dimension_px
        self.quality = quality

    def compress(
        self,
        image: ImageInput,
        max_dimension_px: int | None = None,
        quality: float | None = None,
    ) -> ImageInput:
        """Return *image* downscaled and re-encoded, or *image* itself on any failure.

        Accepts raw bytes or a ``data:`` URI and returns the same kind.
        """
        max_dim = max_dimension_px or self.max_dimension_px
        q = self.quality if quality is None else quality
        try:
            if isinstance(image, str):
                if not is_data_uri(image):
                    return image
                _, raw = parse_data_uri(image)
                return to_data_uri(self._reencode(raw, max_dim, q), _OUTPUT_MIME)
            return self._reencode(bytes(image), max_dim, q)
        except Exception:
            # Fail soft: undecodable input, truncated files, odd modes.
            return image

    def compress_many(self, images: Mapping[str, str]) -> dict[str, str]:
        """Compress every image in *images*; empty entries stay empty."""
        return {key: self.compress(src) if src else "" for key, src in images.items()}

    def _reencode(self, raw: bytes, max_dim: int, quality: float) -> bytes:
        with Image.open(BytesIO(raw)) as img:
            img.load()
            if img.mode in ("RGBA", "LA", "P"):
                # Flatten transparency on white for JPEG.
                rgba = img.convert("RGBA")
                frame = Image.new("RGB", rgba.size, (255, 255, 255))
                frame.paste(rgba, mask=rgba.split()[-1])
            elif img.mode != "RGB":
                frame = img.convert("RGB")
            else:
                frame = img.copy()

        size = _target_size(frame.width, frame.height, max_dim)
        if size != frame.size:
            frame = frame.resize(size, Image.Resampling.LANCZOS)

        output = BytesIO()
        frame.save(output, format="JPEG", quality=_pillow_quality(quality), optimize=True)
        return output.getvalue()
