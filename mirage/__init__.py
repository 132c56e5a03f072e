"""mirage - classroom image tool: procedural fractals and simple edits.

Status messages go to stderr; the only output is the image file.

    mirage fractal julia.png
    mirage blur photo.png blurred.png 2.5
"""

from mirage.cli import main

__version__ = "0.1.0"
__all__ = ["main"]
