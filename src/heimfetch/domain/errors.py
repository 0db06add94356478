# heimfetch/domain/errors.py
from __future__ import annotations


class HeimfetchError(Exception):
    """Base class for errors raised by heimfetch itself."""


class DecodeError(HeimfetchError, ValueError):
    """A payload from the remote service (or a JSON record) is malformed."""


class RemoteServiceError(HeimfetchError):
    """The remote service answered with an explicit error body."""

    def __init__(self, path: str, message: str, code: int | None = None) -> None:
        super().__init__(f"{path}: code={code} message={message}")
        self.path = path
        self.code = code
        self.message = message
