"""Building and executing the command line for each job."""

import logging
import os
import shlex
import subprocess

import attr

from .backends import CONTAINER_INPUT_DIR, CONTAINER_OUTPUT_DIR, Mount
from .run_log import FAILURE, SKIPPED, STARTED, SUCCESS, RunRecord


@attr.s(frozen=True)
class CommandSpec:
    """Fully resolved argument vector of one external invocation"""

    #: Arguments, first is the executable
    argv = attr.ib(converter=lambda argv: tuple(map(str, argv)))

    def __str__(self):
        return " ".join(shlex.quote(arg) for arg in self.argv)


class JobRunner:
    """Runs jobs with ``tool`` through ``backend`` and records the outcome in ``run_log``."""

    def __init__(
        self,
        backend,
        tool,
        image,
        input_root,
        out_dir,
        run_log,
        options=(),
        preserve_subdirs=False,
        call=subprocess.call,
    ):
        self.backend = backend
        self.tool = tool
        self.image = image
        self.input_root = os.path.abspath(input_root)
        self.out_dir = os.path.abspath(out_dir)
        self.run_log = run_log
        self.options = tuple(options)
        self.preserve_subdirs = preserve_subdirs
        self.call = call
        self.input_mount = Mount(self.input_root, CONTAINER_INPUT_DIR, read_only=True)
        self.output_mount = Mount(self.out_dir, CONTAINER_OUTPUT_DIR)

    def _output_parts(self, job):
        if self.preserve_subdirs and job.relative_subdir != ".":
            return job.relative_subdir.split(os.sep)
        return []

    def _input_path(self, path):
        parts = os.path.relpath(path, self.input_root).split(os.sep)
        return self.backend.resolve(self.input_mount, *parts)

    def build_command(self, job):
        """Return ``CommandSpec`` for running ``job``."""
        inputs = [self._input_path(job.primary_path)]
        if job.secondary_path:
            inputs.append(self._input_path(job.secondary_path))
        out_path = self.backend.resolve(self.output_mount, *self._output_parts(job))
        prefix = self.backend.command_prefix(self.image, (self.input_mount, self.output_mount))
        return CommandSpec(prefix + self.tool.arguments(inputs, out_path, self.options))

    def skip(self, job):
        """Record that ``job`` is not executed."""
        return self.run_log.append(RunRecord(job.job_id, SKIPPED, job.reason or "skipped"))

    def run(self, job):
        """Execute ``job``, return the terminal ``RunRecord``.

        Exactly one ``started`` record is written before and one ``success`` or ``failure`` record
        after execution.  Failures are recorded, never raised.
        """
        if not job.is_valid:
            raise ValueError("Cannot run unmatched job %s" % job.job_id)
        os.makedirs(os.path.join(self.out_dir, *self._output_parts(job)), exist_ok=True)
        cmd = self.build_command(job)
        self.run_log.append(RunRecord(job.job_id, STARTED, str(cmd)))
        try:
            returncode = self.call(list(cmd.argv))
        except OSError as e:
            logging.debug("Could not launch %s", cmd.argv[0], exc_info=True)
            return self.run_log.append(
                RunRecord(job.job_id, FAILURE, "could not execute %s: %s" % (cmd, e))
            )
        if returncode != 0:
            return self.run_log.append(
                RunRecord(job.job_id, FAILURE, "exit status %d: %s" % (returncode, cmd))
            )
        names = [os.path.basename(job.primary_path)]
        if job.secondary_path:
            names.append(os.path.basename(job.secondary_path))
        return self.run_log.append(
            RunRecord(job.job_id, SUCCESS, "processed %s" % " + ".join(names))
        )

    def report_version(self):
        """Log the version of the wrapped tool, return the exit status of the version call."""
        prefix = self.backend.command_prefix(self.image, (self.input_mount, self.output_mount))
        cmd = CommandSpec(prefix + self.tool.version_arguments())
        logging.info("Tool version (%s):", cmd)
        try:
            return self.call(list(cmd.argv))
        except OSError as e:
            logging.warning("Could not determine tool version: %s", e)
            return None
