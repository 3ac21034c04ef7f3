from typing import Optional, Union

TIMEOUT_STATUS = "ETIMEDOUT"

Status = Union[int, str]


class InvalidFormat(ValueError):
    """The legacy URL encoding could not be parsed."""


class ResizeError(Exception):
    """A terminal job failure. Carries the status reported to the caller and the source URL."""

    status: Status = 500

    def __init__(self, url: str, status: Optional[Status] = None, reason: str = ""):
        if status is not None:
            self.status = status
        self.url = url
        self.reason = reason
        super().__init__(f"{self.status} {url} {reason}".strip())


class BadSource(ResizeError):
    status = 400


class SourceUnreachable(ResizeError):
    pass


class SourceTimeout(ResizeError):
    status = TIMEOUT_STATUS


class EngineFailure(ResizeError):
    status = 500


class WriteFailure(ResizeError):
    status = 500
