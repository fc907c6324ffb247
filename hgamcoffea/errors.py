"""Fatal error conditions of an analysis run.

Every error is permanent: the CLI reports ``str(exc)`` as a single diagnostic
line and exits with status 1.
"""


class AnalysisError(Exception):
    """Base class for all fatal analysis errors."""


class UsageError(AnalysisError):
    """Wrong number of command-line arguments."""


class OutputOpenError(AnalysisError):
    """The output ROOT file could not be created."""


class InputOpenError(AnalysisError):
    """The input ROOT file could not be opened."""


class MissingCollectionError(AnalysisError):
    """The input file has no tree with the expected name."""


class MalformedEventError(AnalysisError):
    """An event has fewer photon or jet entries than it claims."""
