"""
Exception hierarchy for FieldWatch.

Authorization and evidence-load errors abort a run; persistence errors are
raised per flag and handled by the engine without stopping the run.
"""


class FieldWatchError(Exception):
    """Base class for FieldWatch errors."""
    pass


class AuthorizationError(FieldWatchError):
    """Caller is not allowed to trigger an analysis run."""

    def __init__(self, message: str = "Unauthorized", status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


class EvidenceLoadError(FieldWatchError):
    """The evidence store could not provide the analysis window."""
    pass


class PersistenceError(FieldWatchError):
    """A single flag could not be stored."""
    pass


class DuplicateFlagError(PersistenceError):
    """The store already holds an equivalent flag for this window."""
    pass


class RunCancelledError(FieldWatchError):
    """The caller cancelled the run before evidence loading completed."""
    pass
