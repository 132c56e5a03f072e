"""Procedural escape-time images for mirage.

Each pixel combines a linear gradient of its coordinates with the number
of iterations a Julia-style recurrence ``z <- z*z + c`` takes to leave the
escape radius. A ChannelLayout decides which of the three values lands in
the red, green and blue channels.

    config = FractalConfig(width=400, height=400)
    image = generate_image("julia.png", config, LAYOUTS["fractal"])
"""

from __future__ import annotations

import enum
import math
import multiprocessing
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np
from PIL import Image

from mirage.storage import save_image


class Channel(enum.Enum):
    """Per-pixel value that can feed an output channel."""

    GRADIENT_X = enum.auto()
    GRADIENT_Y = enum.auto()
    ITERATIONS = enum.auto()


class ChannelLayout(NamedTuple):
    """Source value for each of the red, green and blue channels."""

    red: Channel
    green: Channel
    blue: Channel


LAYOUTS: dict[str, ChannelLayout] = {
    # Gradient in red/blue, fractal in green
    "fractal": ChannelLayout(Channel.GRADIENT_X, Channel.ITERATIONS, Channel.GRADIENT_Y),
    # Fractal in red, gradient in green/blue
    "generate": ChannelLayout(Channel.ITERATIONS, Channel.GRADIENT_Y, Channel.GRADIENT_X),
}


@dataclass(frozen=True)
class FractalConfig:
    """Generation parameters.

    Attributes:
        width, height: Raster size in pixels
        view_width, view_height: Size of the complex-plane window, centred
            on the origin
        c_real, c_imag: Julia constant added at every step
        escape_radius: Magnitude past which a point counts as escaped
        max_iterations: Iteration cap per pixel
        gradient_scale: Factor applied to pixel coordinates for the
            gradient channels
        transposed: Map pixel rows to the real axis and columns to the
            imaginary axis (the classic look of this generator)
    """

    width: int = 800
    height: int = 800
    view_width: float = 3.0
    view_height: float = 3.0
    c_real: float = -0.4
    c_imag: float = 0.6
    escape_radius: float = 2.0
    max_iterations: int = 255
    gradient_scale: float = 0.3
    transposed: bool = True

    def validate(self) -> None:
        """Raise ValueError if any parameter is out of range."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Size must be positive, got {self.width}x{self.height}")
        for name in ("view_width", "view_height", "c_real", "c_imag", "escape_radius", "gradient_scale"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ValueError(f"{name} must be a finite number, got {value}")
        if self.view_width <= 0 or self.view_height <= 0:
            raise ValueError(
                f"View window must be positive, got {self.view_width}x{self.view_height}"
            )
        if self.escape_radius <= 0:
            raise ValueError(f"Escape radius must be positive, got {self.escape_radius}")
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be >= 0, got {self.max_iterations}")
        if self.gradient_scale < 0:
            raise ValueError(f"gradient_scale must be >= 0, got {self.gradient_scale}")


def gradient(coords: np.ndarray, scale: float) -> np.ndarray:
    """Gradient channel values for integer pixel coordinates.

    Computes ``min(255, floor(scale * coord))`` in 32-bit float.

    Args:
        coords: Integer coordinates (any shape)
        scale: Multiplier applied to each coordinate

    Returns:
        uint8 array with the same shape as coords
    """
    values = np.floor(np.float32(scale) * np.asarray(coords, dtype=np.float32))
    return np.clip(values, 0, 255).astype(np.uint8)


def plane_coordinates(
    config: FractalConfig, row_start: int = 0, row_stop: int | None = None
) -> tuple[np.ndarray, np.ndarray]:
    """Starting points in the complex plane for a band of pixel rows.

    Args:
        config: Generation parameters
        row_start, row_stop: Half-open range of pixel rows (default: all)

    Returns:
        (real, imag) float32 arrays of shape (rows, width)
    """
    if row_stop is None:
        row_stop = config.height

    ys, xs = np.meshgrid(
        np.arange(row_start, row_stop, dtype=np.float32),
        np.arange(config.width, dtype=np.float32),
        indexing="ij",
    )
    scale_x = np.float32(config.view_width) / np.float32(config.width)
    scale_y = np.float32(config.view_height) / np.float32(config.height)
    offset_x = np.float32(config.view_width / 2)
    offset_y = np.float32(config.view_height / 2)

    if config.transposed:
        real = ys * scale_x - offset_x
        imag = xs * scale_y - offset_y
    else:
        real = xs * scale_x - offset_x
        imag = ys * scale_y - offset_y
    return real, imag


def _step(zr, zi, cr, ci):
    """One step of z <- z*z + c on split float32 parts.

    Each product and sum is a separate float32 operation, so the scalar
    and array paths round identically.
    """
    return zr * zr - zi * zi + cr, zr * zi + zi * zr + ci


def escape_time(real: float, imag: float, config: FractalConfig) -> int:
    """Iteration count for a single starting point.

    Iterates ``z <- z*z + c`` from ``z0 = real + imag*i`` until either
    ``max_iterations`` steps have run or ``|z|`` exceeds the escape radius.
    """
    zr, zi = np.float32(real), np.float32(imag)
    cr, ci = np.float32(config.c_real), np.float32(config.c_imag)
    radius = np.float32(config.escape_radius)

    count = 0
    while count < config.max_iterations and np.hypot(zr, zi) <= radius:
        zr, zi = _step(zr, zi, cr, ci)
        count += 1
    return count


def escape_counts(real: np.ndarray, imag: np.ndarray, config: FractalConfig) -> np.ndarray:
    """Vectorised escape_time over arrays of starting points.

    Returns:
        int32 array of iteration counts, same shape as real
    """
    zr = np.array(real, dtype=np.float32)
    zi = np.array(imag, dtype=np.float32)
    cr, ci = np.float32(config.c_real), np.float32(config.c_imag)
    radius = np.float32(config.escape_radius)

    counts = np.zeros(zr.shape, dtype=np.int32)
    active = np.ones(zr.shape, dtype=bool)

    for _ in range(config.max_iterations):
        active &= np.hypot(zr, zi) <= radius
        if not active.any():
            break
        zr[active], zi[active] = _step(zr[active], zi[active], cr, ci)
        counts[active] += 1

    return counts


def _render_band(
    config: FractalConfig, layout: ChannelLayout, row_start: int, row_stop: int
) -> np.ndarray:
    real, imag = plane_coordinates(config, row_start, row_stop)
    rows = row_stop - row_start

    xs = np.broadcast_to(np.arange(config.width), (rows, config.width))
    ys = np.broadcast_to(np.arange(row_start, row_stop)[:, None], (rows, config.width))

    values = {
        Channel.GRADIENT_X: gradient(xs, config.gradient_scale),
        Channel.GRADIENT_Y: gradient(ys, config.gradient_scale),
        Channel.ITERATIONS: np.minimum(escape_counts(real, imag, config), 255).astype(np.uint8),
    }
    return np.stack([values[ch] for ch in layout], axis=-1)


def render(config: FractalConfig, layout: ChannelLayout, workers: int = 1) -> np.ndarray:
    """Compute the full raster.

    Pixels are independent, so with workers > 1 the rows are split into
    bands and rendered in a process pool. Bands are reassembled in row
    order; the result does not depend on the number of workers.

    Args:
        config: Generation parameters
        layout: Channel assignment
        workers: Number of processes to render with

    Returns:
        uint8 array of shape (height, width, 3)

    Raises:
        ValueError: If config or workers is invalid
    """
    config.validate()
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")

    workers = min(workers, config.height)
    if workers == 1:
        return _render_band(config, layout, 0, config.height)

    bounds = np.linspace(0, config.height, workers + 1).astype(int)
    tasks = [
        (config, layout, int(start), int(stop))
        for start, stop in zip(bounds[:-1], bounds[1:])
    ]
    with multiprocessing.Pool(processes=workers) as pool:
        bands = pool.starmap(_render_band, tasks)
    return np.concatenate(bands, axis=0)


def generate_image(
    path: str,
    config: FractalConfig | None = None,
    layout: ChannelLayout = LAYOUTS["fractal"],
    workers: int = 1,
) -> Image.Image:
    """Render a raster and write it to path in a single write.

    Args:
        path: Output file; format comes from the extension
        config: Generation parameters (default: FractalConfig())
        layout: Channel assignment
        workers: Number of processes to render with

    Returns:
        The rendered image

    Raises:
        ValueError: Invalid parameters or unknown file extension
        ImageWriteError: The file could not be written
    """
    if config is None:
        config = FractalConfig()

    raster = render(config, layout, workers=workers)
    image = Image.fromarray(raster)
    save_image(image, path)
    return image
