#!/usr/bin/env python3
"""mirage - classroom image tool: procedural fractals and simple edits.

Generate an escape-time fractal over a gradient background:
    mirage fractal julia.png
    mirage generate julia.png --width 1200 --height 900 --workers 4

Apply one transformation to an existing image:
    mirage blur photo.png blurred.png 2.5
    mirage rotate photo.png turned.png 90
"""

from __future__ import annotations

import argparse
import sys

from mirage.fractal import LAYOUTS, FractalConfig, generate_image
from mirage.operations import apply_operation
from mirage.storage import load_image, save_image


USAGE = """\
Operations (when in doubt, use a .png extension on your filenames):
  blur FROM TO SIGMA
  brighten FROM TO AMOUNT
  crop FROM TO X Y WIDTH HEIGHT
  rotate FROM TO DEGREES          (clockwise, multiple of 90)
  invert FROM TO
  grayscale FROM TO
  fractal TO [generator options]
  generate TO [generator options]
"""


class UsageParser(argparse.ArgumentParser):
    """ArgumentParser that lists every operation when arguments are malformed."""

    def error(self, message: str):
        self.exit(2, f"{self.prog}: error: {message}\n\n{USAGE}")


# =============================================================================
# Command handlers
# =============================================================================


def cmd_render(args: argparse.Namespace) -> None:
    """Render a fractal image (fractal / generate)."""
    config = FractalConfig(
        width=args.width,
        height=args.height,
        view_width=args.view_width,
        view_height=args.view_height,
        c_real=args.c_real,
        c_imag=args.c_imag,
        escape_radius=args.escape_radius,
        max_iterations=args.max_iterations,
        gradient_scale=args.gradient_scale,
        transposed=not args.no_transpose,
    )
    generate_image(args.to, config, LAYOUTS[args.command], workers=args.workers)
    print(f"Saved to {args.to}", file=sys.stderr)


def transform(args: argparse.Namespace, *op_args) -> None:
    """Load FROM, apply the command's operation, save to TO."""
    image = load_image(args.source)
    result = apply_operation(image, args.command, *op_args)
    save_image(result, args.to)
    print(f"Saved to {args.to}", file=sys.stderr)


def cmd_blur(args: argparse.Namespace) -> None:
    transform(args, args.sigma)


def cmd_brighten(args: argparse.Namespace) -> None:
    transform(args, args.amount)


def cmd_crop(args: argparse.Namespace) -> None:
    transform(args, args.x, args.y, args.width, args.height)


def cmd_rotate(args: argparse.Namespace) -> None:
    transform(args, args.degrees)


def cmd_invert(args: argparse.Namespace) -> None:
    transform(args)


def cmd_grayscale(args: argparse.Namespace) -> None:
    transform(args)


# =============================================================================
# Parser
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with subcommands."""
    parser = UsageParser(
        prog="mirage",
        description="Procedural fractal images and simple image edits",
        epilog=USAGE,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="OPERATION")

    # Parent parser for transform commands
    io_parent = UsageParser(add_help=False)
    io_parent.add_argument("source", metavar="FROM", help="Input image file")
    io_parent.add_argument("to", metavar="TO", help="Output image file")

    # Parent parser for generator options
    defaults = FractalConfig()
    gen_parent = UsageParser(add_help=False)
    gen_parent.add_argument("to", metavar="TO", help="Output image file (e.g. out.png)")
    gen_parent.add_argument("--width", type=int, default=defaults.width, help="Image width in pixels")
    gen_parent.add_argument("--height", type=int, default=defaults.height, help="Image height in pixels")
    gen_parent.add_argument(
        "--max-iterations", type=int, default=defaults.max_iterations,
        help="Iteration cap per pixel (counts above 255 are clamped)",
    )
    gen_parent.add_argument("--escape-radius", type=float, default=defaults.escape_radius, help="Escape radius")
    gen_parent.add_argument("--c-real", type=float, default=defaults.c_real, help="Real part of the Julia constant")
    gen_parent.add_argument("--c-imag", type=float, default=defaults.c_imag, help="Imaginary part of the Julia constant")
    gen_parent.add_argument("--view-width", type=float, default=defaults.view_width, help="Width of the complex-plane window")
    gen_parent.add_argument("--view-height", type=float, default=defaults.view_height, help="Height of the complex-plane window")
    gen_parent.add_argument(
        "--gradient-scale", type=float, default=defaults.gradient_scale,
        help="Gradient brightness per pixel coordinate",
    )
    gen_parent.add_argument(
        "--no-transpose", action="store_true",
        help="Map columns to the real axis instead of rows",
    )
    gen_parent.add_argument("--workers", type=int, default=1, help="Processes to render with")

    # fractal / generate
    subparsers.add_parser(
        "fractal", help="Fractal in green over a red/blue gradient", parents=[gen_parent],
    )
    subparsers.add_parser(
        "generate", help="Fractal in red over a green/blue gradient", parents=[gen_parent],
    )

    # blur
    blur_parser = subparsers.add_parser("blur", help="Gaussian blur", parents=[io_parent])
    blur_parser.add_argument("sigma", type=float, help="Blur amount (Gaussian sigma)")

    # brighten
    brighten_parser = subparsers.add_parser("brighten", help="Brighten or darken", parents=[io_parent])
    brighten_parser.add_argument("amount", type=int, help="Added to each channel (negative darkens)")

    # crop
    crop_parser = subparsers.add_parser("crop", help="Crop image", parents=[io_parent])
    crop_parser.add_argument("x", type=int, help="Left edge")
    crop_parser.add_argument("y", type=int, help="Top edge")
    crop_parser.add_argument("width", type=int, help="Width")
    crop_parser.add_argument("height", type=int, help="Height")

    # rotate
    rotate_parser = subparsers.add_parser("rotate", help="Rotate clockwise", parents=[io_parent])
    rotate_parser.add_argument("degrees", type=int, help="90, 180 or 270")

    # invert / grayscale
    subparsers.add_parser("invert", help="Invert colours", parents=[io_parent])
    subparsers.add_parser("grayscale", help="Convert to grayscale", parents=[io_parent])

    return parser


def main(argv: list[str] | None = None):
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    handlers = {
        "fractal": cmd_render,
        "generate": cmd_render,
        "blur": cmd_blur,
        "brighten": cmd_brighten,
        "crop": cmd_crop,
        "rotate": cmd_rotate,
        "invert": cmd_invert,
        "grayscale": cmd_grayscale,
    }

    if not args.command:
        parser.error("no operation given")

    try:
        handlers[args.command](args)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
