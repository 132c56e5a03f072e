"""Reading and writing image files.

Formats are whatever Pillow supports; the output format is chosen from
the file extension. Writes go through a temporary file in the target
directory so a failed save never leaves a partial image behind.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from PIL import Image


class ImageReadError(Exception):
    """An input image could not be opened or decoded."""

    def __init__(self, path: str | Path, cause: Exception):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"cannot read {self.path}: {_describe(cause)}")


class ImageWriteError(Exception):
    """An output image could not be written."""

    def __init__(self, path: str | Path, cause: Exception):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"cannot write {self.path}: {_describe(cause)}")


def _describe(cause: Exception) -> str:
    return getattr(cause, "strerror", None) or str(cause)


def load_image(path: str | Path) -> Image.Image:
    """Load an image file.

    Args:
        path: File path

    Returns:
        PIL Image in RGBA mode if the source has transparency, else RGB.

    Raises:
        ImageReadError: If the file is missing or not a decodable image.
    """
    try:
        image = Image.open(path)
        image.load()
    except OSError as e:
        raise ImageReadError(path, e) from e

    has_alpha = "A" in image.getbands() or "transparency" in image.info
    mode = "RGBA" if has_alpha else "RGB"
    if image.mode != mode:
        image = image.convert(mode)
    return image


def image_format(path: str | Path) -> str:
    """Pillow format name for a file extension (e.g. ".png" -> "PNG")."""
    suffix = Path(path).suffix.lower()
    fmt = Image.registered_extensions().get(suffix)
    if fmt is None:
        raise ValueError(f"Cannot infer image format from extension: {Path(path).name}")
    return fmt


def _target_mode(path: Path) -> int:
    """Permissions for the saved file: keep an existing file's, else honour umask."""
    try:
        return path.stat().st_mode & 0o777
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def save_image(image: Image.Image, path: str | Path) -> None:
    """Write image to path atomically.

    Args:
        image: Image to save
        path: Destination; the extension selects the format

    Raises:
        ValueError: Unknown extension (nothing is written)
        ImageWriteError: The filesystem rejected the write
    """
    path = Path(path)
    fmt = image_format(path)

    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
    except OSError as e:
        raise ImageWriteError(path, e) from e

    try:
        with os.fdopen(fd, "wb") as f:
            image.save(f, format=fmt)
        os.chmod(tmp_name, _target_mode(path))
        os.replace(tmp_name, path)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise ImageWriteError(path, e) from e
    except Exception:
        Path(tmp_name).unlink(missing_ok=True)
        raise
