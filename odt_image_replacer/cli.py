import argparse
import logging
import os
import sys
from typing import List, Optional

from .document import IMAGE_DIR, OdtDocument
from .errors import OdtError


def build_argparser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="odt-image-replacer",
        description="Replace or add images inside an ODT document by frame name.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog="""
EXAMPLES:
  # List all image tags in an ODT:
  %(prog)s --odt report.odt --list

  # Replace an image by tag:
  %(prog)s --odt report.odt --tag image1 --image photo.png --name Pictures/photo.png --output result.odt

  # Add an image file as Pictures/logo.png:
  %(prog)s --odt report.odt --add logo.png --image logo.png
""",
    )
    parser.add_argument("--odt", required=True, help="Path to ODT file")
    parser.add_argument("--list", action="store_true", help="List all image tags in the ODT")
    parser.add_argument("--tag", default="", help="Image tag (draw:name) to replace")
    parser.add_argument("--image", default="", help="Path to new image file")
    parser.add_argument("--name", default="", help="New image name in ODT (e.g. Pictures/image1.png)")
    parser.add_argument("--add", default="", metavar="NAME",
                        help=f"Add --image to the ODT as {IMAGE_DIR}NAME without touching any frame")
    parser.add_argument("--output", default="", help="Output ODT file path (defaults to overwriting input)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _read_image(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def run(args: argparse.Namespace) -> int:
    doc = OdtDocument.open(args.odt)
    with doc:
        if args.list:
            tags = doc.find_image_tags()
            print(f"Found {len(tags)} image tag(s) in {args.odt}:")
            for i, tag in enumerate(tags, start=1):
                print(f"  {i}. {tag}")
            return 0

        output = args.output or args.odt
        if args.add:
            if not args.image:
                raise ValueError("--image is required with --add")
            doc.add_image(args.add, _read_image(args.image))
            doc.save(output)
            print(f"Successfully added {IMAGE_DIR}{args.add} to {output}")
            return 0

        if not (args.tag and args.image and args.name):
            raise ValueError("--tag, --image, and --name are required for image replacement")
        doc.replace_image_by_tag(args.tag, args.name, _read_image(args.image))
        doc.save(output)
    print(f"Successfully replaced image '{args.tag}' in {output}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_argparser()
    args = parser.parse_args(argv)
    level = "DEBUG" if args.verbose else os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format="%(levelname)s %(name)s: %(message)s")

    try:
        return run(args)
    except ValueError as e:
        print(f"Error: {e}\n", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1
    except (OdtError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
