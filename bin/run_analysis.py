#!/usr/bin/env python3
"""Fill the H->yy histograms from an HGamData ROOT file.

Examples
--------
    python bin/run_analysis.py data.root histograms.root
    python bin/run_analysis.py data.root histograms.root --no-progress
    python bin/run_analysis.py data.root histograms.root --step-size 50000 --verbose
    python bin/run_analysis.py data.root histograms.root --summary
"""

import argparse
import logging
import sys

from tqdm import tqdm

from hgamcoffea.analysis_config import DEFAULT_STEP_SIZE, PROGRESS_MININTERVAL
from hgamcoffea.analyzer import run
from hgamcoffea.errors import AnalysisError, UsageError
from hgamcoffea.save_hists import read_histograms

RED = "\033[31m"
RESET = "\033[0m"


class _ColorFormatter(logging.Formatter):
    """Highlight ERROR and CRITICAL records in red."""

    def format(self, record):
        msg = super().format(record)
        if record.levelno >= logging.ERROR:
            return f"{RED}{msg}{RESET}"
        return msg


def _make_handler():
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_ColorFormatter("%(asctime)s - %(levelname)s - %(message)s"))
    return handler


logging.basicConfig(level=logging.INFO, handlers=[_make_handler()])
logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting with status 2."""

    def error(self, message):
        raise UsageError(message)


def _positive_int(value):
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return n


def build_parser():
    parser = _ArgumentParser(
        prog="run_analysis.py",
        usage="%(prog)s data.root histograms.root",
        description="Fill m_yy and pT_j1 histograms from the HGamData tree.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("input", help="Input ROOT file containing the HGamData TTree.")
    parser.add_argument("output", help="Output ROOT file for the histograms (overwritten).")
    optional = parser.add_argument_group("Optional arguments")
    optional.add_argument("--step-size", type=_positive_int, default=DEFAULT_STEP_SIZE,
                          help=f"Events read per chunk (default: {DEFAULT_STEP_SIZE}).")
    optional.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    optional.add_argument("--verbose", action="store_true", help="Show DEBUG-level messages.")
    optional.add_argument("--summary", action="store_true",
                          help="Read the output back and log entries and under/overflow per histogram.")
    return parser


def _log_file_summary(path):
    for name, h in sorted(read_histograms(path).items()):
        flow = h.values(flow=True)
        logger.info("%s: entries=%d (underflow=%d, overflow=%d)", name, flow.sum(), flow[0], flow[-1])


def main(argv=None):
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as e:
        print(parser.format_usage(), end="")
        logger.error(str(e))
        return 1

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    pbar = tqdm(
        total=None,
        desc="events",
        unit="evt",
        file=sys.stderr,
        mininterval=PROGRESS_MININTERVAL,
        disable=args.no_progress or not sys.stderr.isatty(),
    )
    try:
        summary = run(args.input, args.output, step_size=args.step_size, progress=pbar)
    except AnalysisError as e:
        logger.error(str(e))
        return 1
    finally:
        pbar.close()

    logger.info(
        "Done in %.1f s. %d events in %d chunk(s); entries: %s",
        summary.elapsed, summary.n_events, summary.n_chunks,
        ", ".join(f"{name}={n}" for name, n in summary.entries.items()),
    )
    if args.summary:
        _log_file_summary(args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
