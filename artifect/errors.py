"""Root exception shared by every Artifect error type."""


class ArtifectError(Exception):
    """Base class for all errors raised by Artifect."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
