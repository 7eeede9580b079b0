"""HTTP error values returned or raised anywhere down the pipeline."""

from __future__ import annotations

import traceback
from http import HTTPStatus

from starlette.exceptions import HTTPException


def reason_phrase(status: int) -> str:
    """Standard reason phrase for a status code, or '' if unknown."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


class HTTPError(Exception):
    """An HTTP-level failure with an optional status code.

    Route handlers may either return an HTTPError or raise one. A missing
    status means 500. The default message is the reason phrase, so a bare
    ``HTTPError(404)`` carries ``"Not Found"``.
    """

    def __init__(
        self,
        status: int | None = None,
        message: str | None = None,
        *,
        cause: BaseException | None = None,
    ) -> None:
        self.status = status
        self.message = message if message is not None else reason_phrase(status or 500)
        self.cause = cause
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        """Status to respond with: the error status if it is a 4xx/5xx, else 500."""
        if isinstance(self.status, int) and 400 <= self.status <= 599:
            return self.status
        return 500

    @property
    def stack(self) -> str:
        """Formatted traceback of the underlying exception, for development error pages."""
        exc = self.cause or self
        return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    @classmethod
    def from_exception(cls, exc: BaseException) -> HTTPError:
        """Convert any exception into an HTTPError."""
        if isinstance(exc, HTTPError):
            return exc
        if isinstance(exc, HTTPException):
            return cls(exc.status_code, str(exc.detail), cause=exc)
        status = getattr(exc, "status", None)
        if not isinstance(status, int):
            status = None
        return cls(status, str(exc), cause=exc)

    def __repr__(self) -> str:
        return f"HTTPError(status={self.status!r}, message={self.message!r})"


class NotFound(HTTPError):
    """404 with the generic reason phrase unless a message is given."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(404, message)
