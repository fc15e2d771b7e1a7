"""The per-run log of job outcomes."""

import collections
import datetime
import logging

import attr

#: Command is about to be executed
STARTED = "started"
#: Command returned zero
SUCCESS = "success"
#: Command returned non-zero or could not be launched
FAILURE = "failure"
#: Job was not executed
SKIPPED = "skipped"

#: All outcomes, in the order used for summaries
OUTCOMES = (STARTED, SUCCESS, FAILURE, SKIPPED)

#: Outcomes ending the processing of a job
TERMINAL_OUTCOMES = (SUCCESS, FAILURE, SKIPPED)

#: Logging level for echoing records on the console
LEVELS = {
    STARTED: logging.INFO,
    SUCCESS: logging.INFO,
    FAILURE: logging.WARNING,
    SKIPPED: logging.WARNING,
}


def utc_now():
    return datetime.datetime.now(datetime.timezone.utc)


@attr.s(frozen=True)
class RunRecord:
    """One entry of the run log"""

    #: Identifier of the job, derived from the input file names
    job_id = attr.ib()
    #: One of ``OUTCOMES``
    outcome = attr.ib(validator=attr.validators.in_(OUTCOMES))
    #: Free text, e.g., the command or the reason for skipping
    detail = attr.ib(default="")
    #: Time of the record, timezone-aware UTC
    timestamp = attr.ib(factory=utc_now)

    def to_line(self):
        """Return the record formatted as a log file line (without newline)."""
        stamp = self.timestamp.astimezone(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        line = "[%s] %s %s" % (stamp, self.outcome.upper(), self.job_id)
        if self.detail:
            line += ": %s" % self.detail
        return line


class RunLog:
    """Append-only log file of ``RunRecord`` entries for one run.

    Use as a context manager; the file is truncated on entering and closed on all exit paths.
    Each record is flushed to disk right away and echoed through ``logging``.
    """

    def __init__(self, path):
        #: Path to the log file
        self.path = path
        #: Records appended in this run
        self.records = []
        self._stream = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False

    def open(self):
        logging.debug("Opening run log %s", self.path)
        self._stream = open(self.path, "wt")

    def close(self):
        if self._stream is not None:
            self._stream.flush()
            self._stream.close()
            self._stream = None

    def append(self, record):
        """Write ``record`` to the log file and echo it on the console."""
        if self._stream is None:
            raise ValueError("Run log %s is not open" % self.path)
        line = record.to_line()
        self._stream.write(line + "\n")
        self._stream.flush()
        self.records.append(record)
        logging.log(LEVELS[record.outcome], "%s", line)
        return record


def summarize(records):
    """Return ``OrderedDict`` with the number of records for each outcome."""
    counts = collections.Counter(record.outcome for record in records)
    return collections.OrderedDict((outcome, counts[outcome]) for outcome in OUTCOMES)
