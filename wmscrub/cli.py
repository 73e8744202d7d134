"""
Command-line interface for wm-scrub.

Handles argument parsing, glob expansion, and orchestrates scrubbing.
"""

import argparse
import glob
import logging
import sys
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import List, Optional, Tuple

from wmscrub import __version__
from wmscrub.core import scrub
from wmscrub.errors import InvalidInput
from wmscrub.patterns import load_watermarks
from wmscrub.preview import PreviewSession
from wmscrub.report import ExitCode, ScrubResult, format_json, format_text
from wmscrub.strategies import STRATEGIES


logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="wm-scrub",
        description=(
            "Remove a known watermark text from PDF content streams. "
            "Matches (TEXT) literal strings and <hex> strings byte for byte; "
            "identical bytes inside images or fonts also match."
        ),
        epilog="Exit codes: 0=removed, 1=not found, 2=error",
    )

    parser.add_argument(
        "files",
        nargs="+",
        help="PDF file(s) to scrub. Supports glob patterns.",
    )

    parser.add_argument(
        "--text",
        "-t",
        action="append",
        dest="texts",
        metavar="TEXT",
        help="Watermark text to remove (repeatable).",
    )

    parser.add_argument(
        "--textfile",
        type=Path,
        metavar="PATH",
        help="File with watermark texts, one per line.",
    )

    parser.add_argument(
        "--mode",
        choices=sorted(STRATEGIES),
        default="replace",
        help=(
            "replace: blank each occurrence in place; "
            "delete: drop every stream that contains it (default: replace)."
        ),
    )

    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        metavar="PATH",
        help="Output file (single input only).",
    )

    parser.add_argument(
        "--outdir",
        type=Path,
        metavar="DIR",
        help="Directory for output files (default: beside each input).",
    )

    parser.add_argument(
        "--suffix",
        default="_clean",
        help="Suffix added to output file names (default: _clean).",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be removed without writing anything.",
    )

    parser.add_argument(
        "--preview",
        type=Path,
        metavar="PNG",
        help="Render the first page of the result to a PNG (single input only).",
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail instead of reporting not-found when streams were skipped.",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output JSON report to stdout.",
    )

    parser.add_argument(
        "--jobs",
        "-j",
        type=int,
        default=1,
        metavar="N",
        help="Number of parallel workers for batch mode (default: 1).",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Log progress to stderr (-v info, -vv debug).",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def configure_logging(verbosity: int) -> None:
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def expand_globs(patterns: List[str]) -> List[Path]:
    """Expand glob patterns into a list of file paths."""
    files: List[Path] = []
    for pattern in patterns:
        if any(c in pattern for c in ["*", "?", "["]):
            matches = glob.glob(pattern, recursive=True)
            files.extend(Path(m) for m in matches)
        else:
            files.append(Path(pattern))
    return files


def output_path_for(
    file_path: Path,
    output: Optional[Path],
    outdir: Optional[Path],
    suffix: str,
) -> Path:
    """Where the scrubbed copy of ``file_path`` is written."""
    if output is not None:
        return output
    name = f"{file_path.stem}{suffix}{file_path.suffix or '.pdf'}"
    return (outdir or file_path.parent) / name


def scrub_single_file(
    file_path: Path,
    texts: List[str],
    mode: str,
    strict: bool,
    destination: Optional[Path],
    keep_data: bool = False,
) -> Tuple[Path, ScrubResult]:
    """Scrub a single file and return (path, result)."""
    try:
        data = file_path.read_bytes()
    except OSError as e:
        return (file_path, ScrubResult(exit_code=ExitCode.ERROR, error=str(e)))

    result = scrub(data, texts, mode, strict=strict)

    if result.removed and destination is not None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(result.data)
        result.output_path = destination
        logger.info("Wrote %s", destination)

    # Results cross process boundaries; the document bytes stay behind
    if not keep_data:
        result.data = None
    return (file_path, result)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    files = expand_globs(args.files)

    if not files:
        print("Error: No files found matching the provided patterns.", file=sys.stderr)
        return ExitCode.ERROR.value

    missing = [f for f in files if not f.exists()]
    if missing:
        for f in missing:
            print(f"Error: File not found: {f}", file=sys.stderr)
        return ExitCode.ERROR.value

    if len(files) > 1 and (args.output or args.preview):
        print("Error: --output and --preview take a single input file.", file=sys.stderr)
        return ExitCode.ERROR.value

    try:
        texts = load_watermarks(strings=args.texts, file_path=args.textfile)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return ExitCode.ERROR.value

    if not texts:
        print("Error: No watermark text given (use --text or --textfile).", file=sys.stderr)
        return ExitCode.ERROR.value

    def destination(f: Path) -> Optional[Path]:
        if args.dry_run:
            return None
        return output_path_for(f, args.output, args.outdir, args.suffix)

    results = []
    worst_exit = ExitCode.REMOVED

    if args.jobs > 1 and len(files) > 1:
        # Parallel execution, one document per worker
        with ProcessPoolExecutor(max_workers=args.jobs) as executor:
            futures = {
                executor.submit(
                    scrub_single_file, f, texts, args.mode, args.strict, destination(f)
                ): f
                for f in files
            }
            for future in as_completed(futures):
                file_path, result = future.result()
                results.append((file_path, result))
                if result.exit_code.value > worst_exit.value:
                    worst_exit = result.exit_code
    else:
        for f in files:
            file_path, result = scrub_single_file(
                f, texts, args.mode, args.strict, destination(f),
                keep_data=bool(args.preview),
            )
            results.append((file_path, result))
            if result.exit_code.value > worst_exit.value:
                worst_exit = result.exit_code

    if args.preview:
        file_path, result = results[0]
        if result.errored:
            print(f"Skipping preview of {file_path}: scrub failed.", file=sys.stderr)
        else:
            try:
                PreviewSession(result.data).save_png(args.preview)
            except InvalidInput as e:
                print(f"Error: Preview failed: {e}", file=sys.stderr)
                worst_exit = ExitCode.ERROR
        result.data = None

    if args.json_output:
        print(format_json(results))
    else:
        output = format_text(results)
        if output:
            print(output)

    return worst_exit.value


if __name__ == "__main__":
    sys.exit(main())
