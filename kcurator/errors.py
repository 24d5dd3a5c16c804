"""Error types shared across kcurator.

Store and analyzer failures are explicit exceptions; handlers decide whether
to fall back, skip, or let the dispatcher report the command as failed.
"""


class CuratorError(Exception):
    """Base error for kcurator."""


class ParseError(CuratorError):
    """Command line could not be parsed into a command."""


class StoreError(CuratorError):
    """Store query / write / delete failed."""


class SearchError(StoreError):
    """Every search strategy failed for one call."""


class AnalyzerError(CuratorError):
    """Content analysis failed for a single piece of text."""


class OptimizationError(CuratorError):
    """An optimization step failed; earlier steps stay committed.

    Attributes:
        report: The partial :class:`~kcurator.optimize.OptimizationReport`.
    """

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report
