"""qrmaker CLI: generate QR codes with an embedded or overlaid image."""

import argparse
import io
import sys
from pathlib import Path

from PIL import Image

from qrmaker.embed import MAX_VERSION, MIN_VERSION, EmbedParams, embed_image, resolve_seed
from qrmaker.errors import CapacityError, FileIOError, QRMakerError, UsageError
from qrmaker.logging import audit, get_logger, setup_logging
from qrmaker.overlay import MAX_OVERLAY_PCT, MIN_OVERLAY_PCT, MIN_SIZE, OverlayLayout, render_overlay

log = get_logger("cli")

DEFAULT_URL = "https://example.com"
DEFAULT_OUTPUT = "qrcode.png"
DEFAULT_VERSION = 6
DEFAULT_SCALE = 8
DEFAULT_MASK = 2
DEFAULT_OFFSET = 4
DEFAULT_SIZE = 512
DEFAULT_OVERLAY_PCT = 25

DESCRIPTION = """\
QR Code Art Generator

Creates QR codes with embedded or overlaid images.

Modes:
  Embed (default): QR modules are chosen to resemble the image (QArt)
  Overlay (--overlay): image is placed on top of the QR code center
"""

EPILOG = """\
Examples:
  # Embed mode (artistic QR)
  qrmaker --image photo.png --url 'https://mysite.com'
  qrmaker --image photo.png --url 'https://mysite.com' --dither --version 8

  # Overlay mode (logo in center)
  qrmaker --overlay --image logo.png --url 'https://mysite.com'
  qrmaker --overlay --image logo.png --url 'https://mysite.com' --size 1024
  qrmaker --overlay --image logo.png --url 'https://mysite.com' --size 1024 --overlay-size 30

Styling tips:
  - Embed: use --dither for photos, higher --version for longer URLs
  - Overlay: keep --overlay-size under 30% for reliable scanning
"""


def _positive_int(s: str) -> int:
    value = int(s)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qrmaker",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--image", default=None, help="Image to embed/overlay in the QR code")
    parser.add_argument("--url", default=DEFAULT_URL, help="URL or text to encode")
    parser.add_argument("-o", "--output", default=DEFAULT_OUTPUT, help="Output PNG path")
    parser.add_argument("--overlay", action="store_true",
                        help="Overlay the image on the QR code instead of embedding it")
    parser.add_argument("--seed", type=int, default=0,
                        help="Random seed for reproducible results (0 = use current time)")

    # Global logging flags
    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-level", default="ERROR",
                        choices=["DEBUG", "INFO", "AUDIT", "WARNING", "ERROR"],
                        help="Console log level")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")
    parser.add_argument("--verify", action="store_true",
                        help="Scan the generated code with pyzbar/OpenCV after writing it")

    embed = parser.add_argument_group("embed mode")
    embed.add_argument("--version", type=int, default=DEFAULT_VERSION,
                       choices=range(MIN_VERSION, MAX_VERSION + 1), metavar=f"{{{MIN_VERSION}-{MAX_VERSION}}}",
                       help="QR version")
    embed.add_argument("--scale", type=_positive_int, default=DEFAULT_SCALE, help="Pixels per QR module")
    embed.add_argument("--mask", type=int, default=DEFAULT_MASK, choices=range(8), metavar="{0-7}",
                       help="QR mask pattern")
    embed.add_argument("--dx", type=int, default=DEFAULT_OFFSET,
                       help="Horizontal half-width of the image area sampled per module")
    embed.add_argument("--dy", type=int, default=DEFAULT_OFFSET,
                       help="Vertical half-width of the image area sampled per module")
    embed.add_argument("--rand", action="store_true", help="Randomize control pixel selection")
    embed.add_argument("--dither", action="store_true", help="Dither the image when binarizing it")
    embed.add_argument("--only-data", action="store_true", help="Only use data modules for the image")
    embed.add_argument("--save-control", action="store_true",
                       help="Save the binarized target image instead of the QR code")

    over = parser.add_argument_group("overlay mode")
    over.add_argument("--size", type=int, default=DEFAULT_SIZE,
                      help=f"Output size in pixels (minimum {MIN_SIZE})")
    over.add_argument("--overlay-size", type=int, default=DEFAULT_OVERLAY_PCT,
                      help=f"Overlay size as a percentage of the QR code ({MIN_OVERLAY_PCT}-{MAX_OVERLAY_PCT})")
    return parser


def _require_image(args):
    if not args.image:
        raise UsageError("no --image given")


def cmd_overlay(args) -> tuple[bytes, list[str]]:
    """Overlay mode; returns the PNG and the summary lines."""
    layout = OverlayLayout.from_request(args.size, args.overlay_size)
    data = render_overlay(args.url, args.image, layout)
    return data, [
        f"  URL: {args.url}",
        f"  Mode: overlay, Size: {layout.size}x{layout.size}, Logo: {layout.overlay_pct}%",
    ]


def cmd_embed(args) -> tuple[bytes, list[str]]:
    """Embed mode; returns the PNG and the summary lines."""
    try:
        image_bytes = Path(args.image).read_bytes()
    except OSError as exc:
        raise FileIOError(f"cannot read image {args.image}: {exc.strerror or exc}") from exc

    params = EmbedParams(
        seed=resolve_seed(args.seed),
        version=args.version,
        scale=args.scale,
        mask=args.mask,
        dx=args.dx,
        dy=args.dy,
        rand_control=args.rand,
        dither=args.dither,
        only_data=args.only_data,
        save_control=args.save_control,
    )
    data = embed_image(args.url, image_bytes, params)

    lines = [
        f"  URL: {args.url}",
        f"  Mode: embed, Version: {params.version}, Scale: {params.scale}, Seed: {params.seed}",
    ]
    if params.dither:
        lines.append("  Dithering: enabled")
    if params.rand_control:
        lines.append("  Random control: enabled")
    if params.save_control:
        lines.append("  Output: control image")
    return data, lines


def write_output(path: str, data: bytes):
    output = Path(path)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(data)
    except OSError as exc:
        raise FileIOError(f"cannot write output file {path}: {exc.strerror or exc}") from exc


def _verify_output(data: bytes, expected: str, prefix: bool = False) -> int:
    try:
        from qrmaker.verify import verify
    except ImportError as exc:
        # pyzbar fails at import time when the zbar shared library is missing
        print(f"Error: scan verification unavailable: {exc}", file=sys.stderr)
        return 1

    with Image.open(io.BytesIO(data)) as image:
        results = verify(image, expected_data=expected, prefix=prefix)
    for r in results:
        status = "PASS" if r.success else "FAIL"
        print(f"  Scan [{r.decoder:12s}] {status} | {r.decode_time_ms:6.1f}ms | {r.decoded_data or r.error}")
    if not any(r.success for r in results):
        print("Warning: no decoder could read the generated QR code", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging before any command runs
    level = "DEBUG" if args.verbose else args.log_level
    setup_logging(level=level, log_file=args.log_file)

    try:
        _require_image(args)
    except UsageError as exc:
        parser.print_help()
        return exc.exit_code

    mode = "overlay" if args.overlay else "embed"
    audit("cli.start", logger=log, mode=mode, image=args.image, output=args.output)

    try:
        data, summary = cmd_overlay(args) if args.overlay else cmd_embed(args)
        write_output(args.output, data)
    except CapacityError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        if exc.hint:
            print(f"Tip: {exc.hint}", file=sys.stderr)
        return exc.exit_code
    except QRMakerError as exc:
        print(f"Error generating {mode} QR: {exc}", file=sys.stderr)
        return exc.exit_code

    print(f"QR code generated: {args.output}")
    for line in summary:
        print(line)
    audit("cli.done", logger=log, mode=mode, output=args.output, bytes=len(data))

    if args.verify:
        if args.save_control and not args.overlay:
            print("  Scan: skipped (control image)")
            return 0
        return _verify_output(data, args.url, prefix=not args.overlay)
    return 0


if __name__ == "__main__":
    sys.exit(main())
