# -*- coding: utf-8 -*-
"""Main entry point of the ``omics-runner`` application."""

import argparse
import logging
import signal
import sys

import coloredlogs

from . import __version__
from .config import RunnerConfig, load_config, merge_config_args
from .exceptions import OmicsRunnerException
from .run_log import FAILURE
from .workflow import perform_star_index, perform_trimming

#: Workflow to call for each subcommand.
WORKFLOWS = {"trim-galore": perform_trimming, "star-index": perform_star_index}

#: Subcommands returning non-zero on any failed job, even without ``--strict``.
ALWAYS_STRICT = ("star-index",)


def setup_logging(runner_config):
    """Setup logging based on ``runner_config``."""
    logger = logging.getLogger()
    # Clear logging handlers.
    logger.handlers = []

    # Setup logging to stderr
    if runner_config.quiet:
        coloredlogs.install(level=logging.WARN, logger=logger)
    elif runner_config.verbose:
        coloredlogs.install(level=logging.DEBUG, logger=logger)
    else:
        coloredlogs.install(level=logging.INFO, logger=logger)


def handle_sigterm(signum, _frame):
    """Turn SIGTERM into ``SystemExit`` so open log files are flushed and closed."""
    logging.warning("Received signal %d, terminating", signum)
    sys.exit(128 + signum)


def run(config, input_dir, output_dir):
    """Main entry point (after parsing command line options)."""
    logging.info("Starting omics-runner %s", config.command)
    logging.debug("Configuration is: %s", config)
    try:
        records = WORKFLOWS[config.command](config, input_dir, output_dir)
    except OmicsRunnerException as e:
        logging.error("%s", e)
        return e.exit_code

    any_failure = any(record.outcome == FAILURE for record in records)
    if any_failure and (config.strict or config.command in ALWAYS_STRICT):
        logging.warning("At least one job failed, returning non-zero exit code.")
        return 1
    return 0


def add_common_arguments(parser):
    parser.add_argument("--image", help="Container image to use instead of the default one")
    parser.add_argument(
        "--extra-arg",
        dest="extra_args",
        default=[],
        action="append",
        help="Extra argument for the wrapped tool; provide multiple times for multiple arguments",
    )
    parser.add_argument(
        "--runtime-order",
        default=[],
        action="append",
        help=(
            "Runtime to probe if none is requested; provide multiple times to set the order "
            "of preference (default: apptainer, singularity, docker)"
        ),
    )
    parser.add_argument(
        "--strict", action="store_true", help="Return non-zero exit code if any job failed"
    )
    parser.add_argument("--verbose", action="store_true", default=None, help="Increase verbosity")
    parser.add_argument("--quiet", action="store_true", default=None, help="Decrease verbosity")


def build_parser():
    """Return the ``argparse.ArgumentParser`` for the application."""
    parser = argparse.ArgumentParser(
        description="Run containerized bioinformatics tools on sequencing data"
    )
    parser.add_argument("--version", action="version", version="%(prog)s {}".format(__version__))
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    trim = subparsers.add_parser(
        "trim-galore",
        help="Run Trim Galore on each mate pair",
        description=(
            "Find files matching the primary pattern in INPUT_DIR, infer the mate by replacing "
            "the first occurrence of the primary marker with the secondary marker, and run Trim "
            "Galore in paired-end mode for each pair."
        ),
    )
    trim.add_argument("input_dir", metavar="INPUT_DIR", help="Directory with FASTQ files")
    trim.add_argument("output_dir", metavar="OUTPUT_DIR", help="Path to output directory")
    trim.add_argument(
        "runtime_arg",
        metavar="RUNTIME",
        nargs="?",
        help="Container runtime (docker, singularity, apptainer, direct); probed if not given",
    )
    trim.add_argument("--runtime", help="Same as the RUNTIME argument")
    trim.add_argument("--pattern", help="Pattern of first-mate files (default: *_R1*.fastq*)")
    trim.add_argument("--primary-marker", help="Marker of first-mate files (default: _R1)")
    trim.add_argument("--secondary-marker", help="Marker of second-mate files (default: _R2)")
    trim.add_argument(
        "--single-end", action="store_true", help="Run on each matching file without a mate"
    )
    trim.add_argument(
        "--no-recursive", action="store_true", help="Only look at files directly in INPUT_DIR"
    )
    trim.add_argument(
        "--preserve-subdirs",
        action="store_true",
        help="Write output of files in subdirectories to the same subdirectory of OUTPUT_DIR",
    )
    add_common_arguments(trim)

    star = subparsers.add_parser(
        "star-index",
        help="Build a STAR genome index",
        description=(
            "Build a STAR genome index from the genome FASTA and (optionally) the GTF "
            "annotation found in INPUT_DIR."
        ),
    )
    star.add_argument("input_dir", metavar="INPUT_DIR", help="Directory with reference files")
    star.add_argument("output_dir", metavar="OUTPUT_DIR", help="Path to index directory")
    star.add_argument("threads", metavar="THREADS", type=int, nargs="?", help="Default: 4")
    star.add_argument(
        "sjdb_overhang", metavar="SJDB_OVERHANG", type=int, nargs="?", help="Default: 100"
    )
    star.add_argument(
        "--runtime",
        help="Container runtime (docker, singularity, apptainer, direct); probed if not given",
    )
    add_common_arguments(star)
    return parser


def main(argv=None):
    """Main entry point (before parsing command line options).

    Will also load configuration TOML file at ``~/.omicsrunnerrc.toml`` (if any) and merge this
    with the settings from the arguments.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if getattr(args, "runtime_arg", None):
        if args.runtime and args.runtime != args.runtime_arg:
            parser.error(
                "conflicting runtimes: RUNTIME is %s but --runtime is %s"
                % (args.runtime_arg, args.runtime)
            )
        args.runtime = args.runtime_arg

    # Load configuration and merge with arguments.
    try:
        runner_config = RunnerConfig.build(merge_config_args(load_config(), args), args.command)
    except OmicsRunnerException as e:
        logging.error("%s", e)
        return e.exit_code

    # Setup logging and launch.
    setup_logging(runner_config)
    signal.signal(signal.SIGTERM, handle_sigterm)
    return run(runner_config, args.input_dir, args.output_dir)


if __name__ == "__main__":
    sys.exit(main())
