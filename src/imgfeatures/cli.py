"""Command-line interface for imgfeatures."""

import argparse
import logging
import sys

import yaml

from .core import (
    FrameBorder,
    InvalidInputError,
    extract,
    load_grayscale_image,
    load_options,
    merge_options,
)


def build_parser():
    parser = argparse.ArgumentParser(
        description="Extract tracking features from an image.",
        epilog=(
            "Output is a YAML list of records with fields x, y and type, plus "
            "intensity and region_size for color regions and theta, rho and "
            "votes for lines. Field names are snake_case (regionSize is written "
            "as region_size)."
        ),
    )
    parser.add_argument("image", help="Path to the image file.")
    parser.add_argument(
        "-c",
        "--options",
        help="Path to a detection options YAML file.",
    )
    parser.add_argument(
        "-m",
        "--mode",
        dest="modes",
        action="append",
        help="Detection mode (corner, color, lines); may be repeated.",
    )
    parser.add_argument(
        "--border",
        nargs=4,
        type=float,
        metavar=("TOP", "RIGHT", "BOTTOM", "LEFT"),
        help="Restrict detection to the border band, as fractions of the image size.",
    )
    parser.add_argument("--coarsen", type=int, default=1, help="Downsampling factor.")
    parser.add_argument("-o", "--output", help="Write features as YAML to this file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log detector statistics.")
    return parser


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        image = load_grayscale_image(args.image, coarsen_factor=args.coarsen)
    except Exception as e:
        print(f"Error loading image: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.options:
            options, frame_border = load_options(args.options)
        else:
            options, frame_border = merge_options(), FrameBorder()
        if args.modes:
            options = merge_options(
                {
                    "modes": args.modes,
                    "corner_options": options.corner_options,
                    "color_options": options.color_options,
                    "lines_options": options.lines_options,
                }
            )
        if args.border:
            frame_border = FrameBorder(*args.border)
    except (OSError, yaml.YAMLError, InvalidInputError, TypeError) as e:
        print(f"Error loading options: {e}", file=sys.stderr)
        sys.exit(1)

    features = extract(image, frame_border, options)
    records = [f.to_dict() for f in features]
    if args.output:
        with open(args.output, "w") as f:
            yaml.safe_dump(records, f, sort_keys=False)
        print(f"{len(records)} features written to {args.output}")
    else:
        yaml.safe_dump(records, sys.stdout, sort_keys=False)


if __name__ == "__main__":
    main()
