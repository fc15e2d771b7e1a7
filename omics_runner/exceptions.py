"""Model with exception classes for the project."""


class OmicsRunnerException(Exception):
    """Base class for exceptions"""

    #: Process exit code used by the command line interface
    exit_code = 1


class InvalidConfiguration(OmicsRunnerException):
    """Raised on invalid configuration"""

    exit_code = 2


class InputDirMissing(OmicsRunnerException):
    """Raised when the input directory does not exist"""

    exit_code = 3


class UnknownBackend(OmicsRunnerException):
    """Raised when an execution backend name is not known"""

    exit_code = 4


class NoBackendFound(OmicsRunnerException):
    """Raised when none of the preferred execution backends is available"""

    exit_code = 5


class IncompatibleImage(OmicsRunnerException):
    """Raised when the container image cannot be run by the selected backend"""

    exit_code = 6


class MissingReference(OmicsRunnerException):
    """Raised when a required reference input file (e.g., genome FASTA) is missing"""

    exit_code = 7
