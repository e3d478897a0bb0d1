"""
Command Line Interface for rapidocr_lite
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import cv2

from .config import OcrOptions
from .models import DEFAULT_SUITE, ModelRegistry
from .pipeline import ImageDumpObserver, OCRPipeline
from .utils import draw_ocr_boxes

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rapidocr-lite",
        description="Detect and recognize text in images with PP-OCR ONNX models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Recognize text with the default model suite (downloaded on first use)
  rapidocr-lite receipt.jpg

  # Use local model files and print JSON
  rapidocr-lite scan.png --det det.onnx --cls cls.onnx --rec rec.onnx --keys keys.txt --json

  # Skip orientation detection and save annotated images
  rapidocr-lite *.png --no-angle --draw annotated/
        """
    )

    # Input
    parser.add_argument(
        'images',
        nargs='*',
        help='Input image file paths'
    )

    # Model options
    parser.add_argument(
        '--model',
        default=DEFAULT_SUITE,
        help=f'Model suite from the catalog (default: {DEFAULT_SUITE})'
    )
    parser.add_argument(
        '--models-dir',
        default=None,
        help='Directory for downloaded models'
    )
    parser.add_argument('--det', default=None, help='Detector model path (overrides --model)')
    parser.add_argument('--cls', default=None, help='Classifier model path')
    parser.add_argument('--rec', default=None, help='Recognizer model path')
    parser.add_argument('--keys', default=None, help='Recognizer keys file (one glyph per line)')
    parser.add_argument(
        '--status',
        action='store_true',
        help='Print which catalog models are downloaded and exit'
    )

    # Processing options
    defaults = OcrOptions()
    parser.add_argument(
        '--no-angle',
        action='store_true',
        help='Disable orientation classification'
    )
    parser.add_argument(
        '--no-most-angle',
        action='store_true',
        help='Classify each region on its own instead of one vote per image'
    )
    parser.add_argument(
        '--img-resize',
        type=int,
        default=defaults.img_resize,
        help=f'Long-side target before detection, 0 keeps size (default: {defaults.img_resize})'
    )
    parser.add_argument(
        '--padding',
        type=int,
        default=defaults.padding,
        help=f'White border added before detection (default: {defaults.padding})'
    )
    parser.add_argument(
        '--box-score-thresh',
        type=float,
        default=defaults.box_score_thresh,
        help=f'Minimum box score (default: {defaults.box_score_thresh})'
    )
    parser.add_argument(
        '--box-thresh',
        type=float,
        default=defaults.box_thresh,
        help=f'Probability map binarization threshold (default: {defaults.box_thresh})'
    )
    parser.add_argument(
        '--unclip-ratio',
        type=float,
        default=defaults.unclip_ratio,
        help=f'Box expansion ratio (default: {defaults.unclip_ratio})'
    )
    parser.add_argument(
        '--workers',
        type=int,
        default=1,
        help='Threads for per-region work (default: 1)'
    )
    parser.add_argument('--gpu', action='store_true', help='Use CUDA if available')

    # Output
    parser.add_argument('--json', action='store_true', help='Print results as JSON')
    parser.add_argument('--draw', default=None, help='Directory for annotated images')
    parser.add_argument('--debug-dir', default=None, help='Directory for intermediate images')

    # Verbosity
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    return parser


def create_pipeline(args) -> OCRPipeline:
    observer = ImageDumpObserver(args.debug_dir) if args.debug_dir else None
    kwargs = dict(use_gpu=args.gpu, max_workers=args.workers, observer=observer)

    if args.det or args.rec:
        if not (args.det and args.rec):
            raise ValueError("--det and --rec must be given together")
        return OCRPipeline.from_model_paths(args.det, args.cls, args.rec, args.keys, **kwargs)

    return OCRPipeline.from_catalog(args.model, args.models_dir, **kwargs)


def main(argv=None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.status:
        print(ModelRegistry(args.models_dir).status())
        return 0

    if not args.images:
        parser.error("at least one image is required")

    # Validate input files
    for image in args.images:
        if not Path(image).is_file():
            print(f"Error: Input file '{image}' not found", file=sys.stderr)
            return 1

    try:
        options = OcrOptions(
            box_score_thresh=args.box_score_thresh,
            box_thresh=args.box_thresh,
            unclip_ratio=args.unclip_ratio,
            do_angle=not args.no_angle,
            most_angle=not args.no_most_angle,
            img_resize=args.img_resize,
            padding=args.padding,
        )

        with create_pipeline(args) as pipeline:
            outputs = []
            for image in args.images:
                logger.info("Processing %s", image)
                result = pipeline.detect_path(image, options)

                if args.draw:
                    out_dir = Path(args.draw)
                    out_dir.mkdir(parents=True, exist_ok=True)
                    out_path = out_dir / f"{Path(image).stem}_ocr.png"
                    cv2.imwrite(str(out_path), draw_ocr_boxes(cv2.imread(image), result))
                    logger.info("Annotated image saved to %s", out_path)

                if args.json:
                    outputs.append({"image": image, **result.to_dict()})
                else:
                    if len(args.images) > 1:
                        print(f"==> {image} <==")
                    print(result.str_res)

            if args.json:
                print(json.dumps(outputs, ensure_ascii=False, indent=2))

        return 0

    except KeyboardInterrupt:
        print("\n\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
