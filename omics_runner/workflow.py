"""Implementation of the batch workflows: discover inputs, run the tool, log the outcomes."""

import logging
import os
import shutil
import subprocess

from .backends import BackendSelector
from .exceptions import IncompatibleImage, InputDirMissing, MissingReference
from .pairing import FASTA_PATTERNS, GTF_PATTERNS, JobInput, discover, find_reference
from .run_log import FAILURE, SUCCESS, RunLog, summarize
from .runner import JobRunner
from .tools import StarGenomeIndex, TrimGalore

#: Name template of the run log file in the output directory.
TPL_RUN_LOG = "%s_run.log"


def check_input_dir(input_dir):
    """Raise ``InputDirMissing`` if ``input_dir`` is not a directory."""
    if not os.path.isdir(input_dir):
        raise InputDirMissing("input dir '%s' does not exist or is not a directory." % input_dir)


def select_backend(config, tool, which=shutil.which):
    """Select the execution backend for ``tool`` and check that it can run the image."""
    selector = BackendSelector(config.runtime_preference, which=which)
    backend = selector.select(tool.program, requested=config.runtime)
    if not backend.accepts_image(config.image):
        raise IncompatibleImage(
            "The configured image %s cannot be run with %s. Use another runtime or provide a "
            "compatible image." % (config.image, backend.name)
        )
    return backend


def log_summary(records):
    counts = summarize(records)
    logging.info(
        "Summary: %s", ", ".join("%s=%d" % (outcome, count) for outcome, count in counts.items())
    )


def perform_trimming(config, input_dir, output_dir, which=shutil.which, call=subprocess.call):
    """Run Trim Galore for each mate pair (or single-end file) below ``input_dir``.

    Return the list of ``RunRecord`` objects written to the run log.
    """
    check_input_dir(input_dir)
    tool = TrimGalore()
    backend = select_backend(config, tool, which=which)

    input_dir = os.path.realpath(input_dir)
    logging.debug("Creating output directory %s", output_dir)
    os.makedirs(output_dir, exist_ok=True)
    output_dir = os.path.realpath(output_dir)
    log_path = os.path.join(output_dir, TPL_RUN_LOG % tool.name)

    logging.info("Starting Trim Galore run")
    logging.info("Input: %s", input_dir)
    logging.info("Output: %s", output_dir)
    logging.info("Using container runtime: %s", backend.name)
    logging.info("Container image: %s", config.image)

    with RunLog(log_path) as run_log:
        runner = JobRunner(
            backend,
            tool,
            config.image,
            input_dir,
            output_dir,
            run_log,
            options=config.extra_args,
            preserve_subdirs=config.preserve_subdirs,
            call=call,
        )
        found_any = False
        jobs = discover(
            input_dir,
            primary_pattern=config.primary_pattern,
            primary_marker=config.primary_marker,
            secondary_marker=config.secondary_marker,
            recursive=config.recursive,
        )
        for job in jobs:
            found_any = True
            if job.is_valid:
                runner.run(job)
            else:
                runner.skip(job)
        if not found_any:
            logging.info(
                "No files found in %s matching pattern '%s'. Nothing to do.",
                input_dir,
                config.primary_pattern,
            )
        log_summary(run_log.records)

    logging.info("All done. Logs at %s", log_path)
    return run_log.records


def perform_star_index(config, input_dir, output_dir, which=shutil.which, call=subprocess.call):
    """Build a STAR genome index from the FASTA (and optional GTF) file in ``input_dir``.

    Return the list of ``RunRecord`` objects written to the run log.
    """
    check_input_dir(input_dir)
    genome_fasta = find_reference(input_dir, FASTA_PATTERNS)
    if not genome_fasta:
        raise MissingReference(
            "no genome FASTA found in %s (expected .fa/.fasta/.fna)" % input_dir
        )
    annotation_gtf = find_reference(input_dir, GTF_PATTERNS)
    tool = StarGenomeIndex(threads=config.threads, sjdb_overhang=config.sjdb_overhang)
    backend = select_backend(config, tool, which=which)

    input_dir = os.path.realpath(input_dir)
    os.makedirs(output_dir, exist_ok=True)
    output_dir = os.path.realpath(output_dir)
    log_path = os.path.join(output_dir, TPL_RUN_LOG % tool.name)

    logging.info("Starting STAR genome index generation")
    logging.info("Input: %s", input_dir)
    logging.info("Output: %s", output_dir)
    logging.info("Threads: %d, sjdbOverhang: %d", config.threads, config.sjdb_overhang)
    logging.info("Found genome FASTA: %s", genome_fasta)
    if annotation_gtf:
        logging.info("Found annotation GTF: %s", annotation_gtf)
    else:
        logging.info(
            "No GTF found in %s; STAR will build the index without splice junction annotations",
            input_dir,
        )
    logging.info("Using container runtime: %s", backend.name)
    logging.info("Container image: %s", config.image)

    job = JobInput(
        primary_path=os.path.realpath(genome_fasta),
        secondary_path=os.path.realpath(annotation_gtf) if annotation_gtf else None,
    )
    with RunLog(log_path) as run_log:
        runner = JobRunner(
            backend,
            tool,
            config.image,
            input_dir,
            output_dir,
            run_log,
            options=config.extra_args,
            call=call,
        )
        record = runner.run(job)
        if record.outcome == SUCCESS:
            runner.report_version()
        elif record.outcome == FAILURE:
            logging.error("STAR genomeGenerate failed")
        log_summary(run_log.records)

    logging.info("Finished. Logs at %s", log_path)
    return run_log.records
