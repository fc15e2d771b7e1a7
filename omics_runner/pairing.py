"""Discovery of mate-pair FASTQ files below an input directory."""

import fnmatch
import os

import attr

#: Default pattern for first-mate files (matched case-insensitively, like ``find -iname``)
DEFAULT_PRIMARY_PATTERN = "*_R1*.fastq*"
#: Default marker of first-mate files
DEFAULT_PRIMARY_MARKER = "_R1"
#: Default marker of second-mate files
DEFAULT_SECONDARY_MARKER = "_R2"

#: Patterns for locating a genome FASTA file
FASTA_PATTERNS = ("*.fa", "*.fasta", "*.fna", "*.fa.gz", "*.fasta.gz")
#: Patterns for locating a gene annotation file
GTF_PATTERNS = ("*.gtf",)

#: Status of a job that can be executed
STATUS_VALID = "valid"
#: Status of a job whose mate could not be matched
STATUS_UNMATCHED = "unmatched"


@attr.s(frozen=True)
class JobInput:
    """A unit of work for the wrapped tool"""

    #: Path to the first input file (mate 1)
    primary_path = attr.ib()
    #: Path to the second mate, ``None`` in single-end mode or if no mate name could be derived
    secondary_path = attr.ib(default=None)
    #: Directory of the input files relative to the scan root, ``"."`` for the root itself
    relative_subdir = attr.ib(default=".")
    #: One of ``STATUS_VALID`` and ``STATUS_UNMATCHED``
    status = attr.ib(default=STATUS_VALID)
    #: Why the job is unmatched
    reason = attr.ib(default=None)

    @property
    def is_valid(self):
        return self.status == STATUS_VALID

    @property
    def is_paired(self):
        return self.secondary_path is not None

    @property
    def job_id(self):
        """Identifier of the job, the primary file name relative to the scan root."""
        return os.path.normpath(
            os.path.join(self.relative_subdir, os.path.basename(self.primary_path))
        )


def derive_mate_name(basename, primary_marker, secondary_marker):
    """Return ``basename`` with the first occurrence of ``primary_marker`` replaced.

    Returns ``None`` if ``basename`` does not contain ``primary_marker``.

    >>> derive_mate_name("sample_R1_2024_R1.fastq", "_R1", "_R2")
    'sample_R2_2024_R1.fastq'
    """
    if not primary_marker or primary_marker not in basename:
        return None
    return basename.replace(primary_marker, secondary_marker, 1)


def matches_any(basename, patterns):
    """Return whether ``basename`` matches any of ``patterns``, ignoring case."""
    name = basename.lower()
    return any(fnmatch.fnmatchcase(name, pattern.lower()) for pattern in patterns)


def _walk_sorted(root_dir, recursive):
    """Yield ``(dirpath, filenames)`` in a deterministic order."""
    for dirpath, dirnames, filenames in os.walk(root_dir):
        dirnames.sort()
        yield dirpath, sorted(filenames)
        if not recursive:
            break


def discover(
    root_dir,
    primary_pattern=DEFAULT_PRIMARY_PATTERN,
    primary_marker=DEFAULT_PRIMARY_MARKER,
    secondary_marker=DEFAULT_SECONDARY_MARKER,
    recursive=True,
):
    """Yield one ``JobInput`` per file below ``root_dir`` matching ``primary_pattern``.

    The mate file name is derived by replacing the first occurrence of ``primary_marker`` in the
    file name with ``secondary_marker`` and must exist in the same directory.  Files without the
    marker and files without a mate are yielded as unmatched jobs.  Passing ``None`` for
    ``secondary_marker`` selects single-end mode where every match is a job on its own.

    Jobs are yielded sorted by their path relative to ``root_dir``.  Calling the function again
    starts a fresh scan.
    """
    root_dir = os.path.abspath(root_dir)
    matches = []
    for dirpath, filenames in _walk_sorted(root_dir, recursive):
        for filename in filenames:
            path = os.path.join(dirpath, filename)
            if os.path.isfile(path) and matches_any(filename, (primary_pattern,)):
                matches.append(os.path.relpath(path, root_dir))

    for relpath in sorted(matches):
        subdir = os.path.dirname(relpath) or "."
        basename = os.path.basename(relpath)
        primary_path = os.path.join(root_dir, relpath)
        if secondary_marker is None:
            yield JobInput(primary_path=primary_path, relative_subdir=subdir)
            continue

        mate_name = derive_mate_name(basename, primary_marker, secondary_marker)
        if mate_name is None:
            yield JobInput(
                primary_path=primary_path,
                relative_subdir=subdir,
                status=STATUS_UNMATCHED,
                reason="%s does not contain the pattern %s; expecting %s/%s naming"
                % (basename, primary_marker, primary_marker, secondary_marker),
            )
            continue

        secondary_path = os.path.join(os.path.dirname(primary_path), mate_name)
        if os.path.exists(secondary_path):
            yield JobInput(
                primary_path=primary_path, secondary_path=secondary_path, relative_subdir=subdir
            )
        else:
            yield JobInput(
                primary_path=primary_path,
                secondary_path=secondary_path,
                relative_subdir=subdir,
                status=STATUS_UNMATCHED,
                reason="mate file not found for %s, expected %s"
                % (os.path.normpath(relpath), mate_name),
            )


def find_reference(root_dir, patterns):
    """Return the first file directly in ``root_dir`` matching any of ``patterns`` or ``None``."""
    for filename in sorted(os.listdir(root_dir)):
        path = os.path.join(root_dir, filename)
        if os.path.isfile(path) and matches_any(filename, patterns):
            return os.path.abspath(path)
    return None
