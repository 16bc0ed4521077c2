"""
PixelExtrude - raster image to 3D-printable STL extrusion

Main entry point
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

# Ensure repository root is on sys.path so "pixelextrude" is importable.
ROOT_DIR = Path(__file__).resolve().parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from pixelextrude.core.runtime_defaults import RuntimeDefaults, load_runtime_defaults  # noqa: E402

_LOGGER = logging.getLogger(__name__)


def build_parser(defaults: RuntimeDefaults) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixelextrude",
        description="Extrude the dark pixels of an image into a binary STL solid.",
    )
    parser.add_argument("input", help="input image (PNG, JPEG, ...)")
    parser.add_argument("-o", "--output", help="output STL path (default: <input>.stl)")
    parser.add_argument(
        "--thickness-mm",
        type=float,
        default=defaults.thickness_mm,
        help=f"extrusion depth in mm (default: {defaults.thickness_mm})",
    )
    parser.add_argument(
        "--threshold",
        type=int,
        default=defaults.threshold,
        help=f"gray cutoff 0-255, pixels darker than this are solid (default: {defaults.threshold})",
    )
    parser.add_argument("--width-mm", type=float, help="model width in mm (wins over --height-mm)")
    parser.add_argument("--height-mm", type=float, help="model height in mm")
    parser.add_argument(
        "--scale-mm-per-px",
        type=float,
        default=defaults.scale_mm_per_px,
        help=f"mm per pixel when no width/height is given (default: {defaults.scale_mm_per_px})",
    )
    parser.add_argument("--max-px", type=int, help="pixel budget for the longer image side")
    parser.add_argument("--target-mb", type=float, help="approximate STL size in MB (ignored with --max-px)")
    parser.add_argument("--name", help="STL header name (default: extruded)")
    parser.add_argument("--info", action="store_true", help="show image info and planned mesh size, write nothing")
    parser.add_argument("--verify", action="store_true", help="check the written mesh for watertightness")
    parser.add_argument("--log-level", default="INFO", help="log file level (default: INFO)")
    return parser


def options_from_args(args: argparse.Namespace, defaults: RuntimeDefaults):
    from pixelextrude.core.options import ConversionOptions

    return ConversionOptions.from_defaults(
        defaults,
        thickness_mm=args.thickness_mm,
        threshold=args.threshold,
        width_mm=args.width_mm,
        height_mm=args.height_mm,
        scale_mm_per_px=args.scale_mm_per_px,
        max_px=args.max_px,
        target_size_mb=args.target_mb,
        name=args.name,
    )


def show_file_info(filepath: str, options) -> None:
    """Image info plus the mask size / triangle count a conversion would produce."""
    from pixelextrude.core.extruder import count_triangles
    from pixelextrude.core.image_loader import ImageDecodeError, get_image_info, load_image
    from pixelextrude.core.pipeline import build_model_mask, effective_scale
    from pixelextrude.core.stl_writer import binary_stl_size

    print(f"\nFile Info: {filepath}")
    print("-" * 40)

    info = get_image_info(filepath)
    for key, value in info.items():
        print(f"  {key}: {value}")
    if "error" in info:
        raise ImageDecodeError(f"Cannot decode image {filepath}: {info['error']}")

    buffer = load_image(filepath)
    mask, budget = build_model_mask(buffer, options)
    mask_h, mask_w = mask.shape
    n_tri = count_triangles(mask)
    base = options.base_scale(buffer.width, buffer.height)

    print(f"  pixel_budget: {budget}")
    print(f"  mask: {mask_w} x {mask_h}")
    print(f"  foreground_cells: {int(mask.sum()):,}")
    print(f"  triangles: {n_tri:,}")
    print(f"  stl_size_mb: {binary_stl_size(n_tri) / (1024 * 1024):.2f}")
    print(f"  model_size_mm: {buffer.width * base:.2f} x {buffer.height * base:.2f} x {options.thickness_mm:.2f}")
    print(f"  cell_mm: {effective_scale(base, buffer.width, mask_w):.6f}")


def verify_model(model) -> bool:
    mesh = model.to_trimesh()
    watertight = bool(mesh.is_watertight)
    print(f"  Watertight: {watertight}")
    print(f"  Winding consistent: {bool(mesh.is_winding_consistent)}")
    print(f"  Volume: {model.volume:,.3f} mm^3")
    return watertight


def convert_image(
    filepath: str,
    output_path: Optional[str],
    options,
    *,
    verify: bool = False,
    log_path: Optional[Path] = None,
) -> int:
    from pixelextrude.core.image_loader import ImageDecodeError
    from pixelextrude.core.logging_utils import format_exception_message
    from pixelextrude.core.pipeline import EmptyResultError, convert_file

    print(f"\nConverting: {filepath}")
    print("-" * 40)

    try:
        out_path, result = convert_file(filepath, output_path, options)
    except (FileNotFoundError, ImageDecodeError, EmptyResultError) as e:
        _LOGGER.error("Conversion failed for %s: %s", filepath, e)
        print(format_exception_message("Error", str(e), log_path=log_path), file=sys.stderr)
        return 1

    src_w, src_h = result.source_size
    mask_w, mask_h = result.mask_size
    print(f"  Image: {src_w} x {src_h} pixels")
    if result.resampled:
        print(f"  Resampled: {mask_w} x {mask_h} cells (max_px={result.pixel_budget})")
    print(f"  Scale: {result.scale_mm_per_px:.6f} mm/px")
    print(f"  Size: {result.width_mm:.2f} x {result.height_mm:.2f} x {options.thickness_mm:.2f} mm")
    print(f"  Triangles: {result.n_triangles:,} ({result.size_bytes / (1024 * 1024):.2f} MB)")
    print(f"  Saved: {out_path}")

    if verify and not verify_model(result.model):
        print("Warning: mesh is not watertight (diagonal-only pixel contacts?)", file=sys.stderr)
    return 0


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    """Command line interface"""
    defaults = load_runtime_defaults()
    parser = build_parser(defaults)
    args = parser.parse_args(argv)

    from pixelextrude.core.logging_utils import setup_logging

    log_path = setup_logging(log_level=args.log_level)

    try:
        options = options_from_args(args, defaults)
    except ValueError as e:
        parser.error(str(e))

    if args.info:
        try:
            show_file_info(args.input, options)
        except (FileNotFoundError, ValueError) as e:
            from pixelextrude.core.logging_utils import format_exception_message

            _LOGGER.error("Info failed for %s: %s", args.input, e)
            print(format_exception_message("Error", str(e), log_path=log_path), file=sys.stderr)
            return 1
        return 0

    return convert_image(args.input, args.output, options, verify=args.verify, log_path=log_path)


if __name__ == '__main__':
    sys.exit(run_cli())
