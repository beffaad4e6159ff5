"""Command-line entry point: ``python -m exdyn``.

Runs the benchmark sweep of :mod:`exdyn.benchmark` and prints its table.
"""
import argparse
import sys

from exdyn.benchmark import BENCHMARK_COPY_INTERVAL, driver
from exdyn.config import ExplicitDynamicsConfig
from exdyn.errors import ExplicitDynamicsError
from exdyn.time_logger import TimeLogger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m exdyn",
        description="Explicit-dynamics hexahedral bar benchmark",
    )
    parser.add_argument(
        "--label", default="Host", help="Text appended to the table title"
    )
    parser.add_argument(
        "--begin", type=int, default=0, help="First size exponent"
    )
    parser.add_argument(
        "--end",
        type=int,
        default=6,
        help="Size exponent after the last one run",
    )
    parser.add_argument(
        "--runs", type=int, default=1, help="Repetitions per size"
    )
    parser.add_argument(
        "--steps",
        type=int,
        default=None,
        help="Time steps per run (default: 10000)",
    )
    parser.add_argument(
        "--verbosity",
        default=None,
        choices=["default", "verbose", "debug"],
        help="Print phase timings and progress while running",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logger = TimeLogger(verbosity=args.verbosity)
    config = ExplicitDynamicsConfig(copy_interval=BENCHMARK_COPY_INTERVAL)
    try:
        driver(
            args.label,
            args.begin,
            args.end,
            args.runs,
            num_steps=args.steps,
            config=config,
            logger=logger,
        )
    except ExplicitDynamicsError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    logger.print_summary()
    return 0


if __name__ == "__main__":
    sys.exit(main())
