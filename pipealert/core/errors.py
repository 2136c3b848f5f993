"""Application exceptions."""


class PipeAlertError(Exception):
    """Base class for errors raised by PipeAlert."""


class MalformedEventError(PipeAlertError, ValueError):
    """An inbound pipeline event is missing structure it is required to carry."""

    def __init__(self, message: str, execution_id: str = ""):
        super().__init__(message)
        self.execution_id = execution_id


class CommitLookupError(PipeAlertError):
    """Commit metadata could not be fetched from the git host."""
