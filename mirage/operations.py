"""Image operations for mirage CLI.

Each operation takes a PIL Image and returns a new PIL Image. The input
is never modified.
"""

from __future__ import annotations

from typing import Callable

from PIL import Image, ImageFilter


def _color_bands(image: Image.Image) -> tuple[list[Image.Image], Image.Image | None]:
    """Split image into colour bands and an optional alpha band."""
    bands = list(image.split())
    if image.mode in ("RGBA", "LA"):
        return bands[:-1], bands[-1]
    return bands, None


def _map_colors(image: Image.Image, lut: list[int]) -> Image.Image:
    """Apply a 256-entry lookup table to every colour band, keeping alpha."""
    colors, alpha = _color_bands(image)
    bands = [band.point(lut) for band in colors]
    if alpha is not None:
        bands.append(alpha)
    return Image.merge(image.mode, bands)


def op_blur(image: Image.Image, sigma: float) -> Image.Image:
    """Gaussian blur.

    Args:
        image: Input image
        sigma: Standard deviation of the Gaussian, in pixels

    Returns:
        Blurred image
    """
    if sigma < 0:
        raise ValueError(f"blur sigma must be >= 0, got {sigma}")
    return image.filter(ImageFilter.GaussianBlur(radius=sigma))


def op_brighten(image: Image.Image, amount: int) -> Image.Image:
    """Add amount to every colour channel.

    Positive values brighten, negative values darken. Results are
    clamped to 0-255 and alpha is left alone.
    """
    lut = [min(255, max(0, i + amount)) for i in range(256)]
    return _map_colors(image, lut)


def op_crop(image: Image.Image, x: int, y: int, width: int, height: int) -> Image.Image:
    """Crop image.

    The crop box is clipped to the image bounds, so a box hanging off the
    edge yields a smaller image rather than padding.

    Args:
        image: Input image
        x, y: Top-left corner
        width, height: Crop dimensions

    Returns:
        Cropped image
    """
    if min(x, y, width, height) < 0:
        raise ValueError(f"crop values must be >= 0, got {x} {y} {width} {height}")

    w, h = image.size
    left, top = min(x, w), min(y, h)
    right, bottom = min(x + width, w), min(y + height, h)
    return image.crop((left, top, right, bottom))


# Clockwise quarter turns as Pillow transposes (Pillow rotates counter-clockwise)
_CLOCKWISE = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


def op_rotate(image: Image.Image, degrees: int) -> Image.Image:
    """Rotate image clockwise by a multiple of 90 degrees.

    Args:
        image: Input image
        degrees: Rotation angle (clockwise), taken modulo 360

    Returns:
        Rotated image
    """
    turn = degrees % 360
    if turn == 0:
        return image.copy()
    if turn not in _CLOCKWISE:
        raise ValueError(f"rotation must be a multiple of 90 degrees, got {degrees}")
    return image.transpose(_CLOCKWISE[turn])


def op_invert(image: Image.Image) -> Image.Image:
    """Invert colour channels (alpha is kept)."""
    return _map_colors(image, [255 - i for i in range(256)])


def op_grayscale(image: Image.Image) -> Image.Image:
    """Convert to grayscale, keeping alpha if present."""
    _, alpha = _color_bands(image)
    return image.convert("LA" if alpha is not None else "L")


# =============================================================================
# Operations Registry
# =============================================================================


OPERATIONS: dict[str, Callable[..., Image.Image]] = {
    "blur": op_blur,
    "brighten": op_brighten,
    "crop": op_crop,
    "rotate": op_rotate,
    "invert": op_invert,
    "grayscale": op_grayscale,
}


def apply_operation(image: Image.Image, op_name: str, *args, **kwargs) -> Image.Image:
    """Apply a named operation.

    Args:
        image: Input PIL Image
        op_name: Operation name (e.g., "blur", "rotate")
        *args: Positional arguments for the operation
        **kwargs: Keyword arguments for the operation

    Returns:
        Processed PIL Image

    Raises:
        ValueError: If operation name is unknown
    """
    if op_name not in OPERATIONS:
        raise ValueError(f"Unknown operation: {op_name}")

    op_func = OPERATIONS[op_name]
    return op_func(image, *args, **kwargs)
