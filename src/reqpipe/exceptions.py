"""Exception hierarchy for reqpipe.

All exceptions inherit from :class:`ReqpipeError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`reqpipe.exit_codes`.
The CLI entry point :func:`reqpipe.app.main` catches ``ReqpipeError`` and
exits with that code.

Delegate failures share one shape, :class:`RequestError`, with an optional
``response``: it is ``None`` when no reply was received (network failure) and
a :class:`~reqpipe.models.Response` when the server answered with an error
status. Retry predicates rely only on that attribute.

Subclass hierarchy::

    ReqpipeError (exit 1)
    +-- InvalidUsageError     (exit 2)
    +-- ConfigError           (exit 1)
    +-- RequestError          (exit 1)
        +-- AuthError         (exit 3)
        +-- NotFoundError     (exit 4)
        +-- ServerError       (exit 5)
        +-- ConnectionError_  (exit 6)
        +-- ClientError       (exit 7)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from reqpipe.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CLIENT_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)

if TYPE_CHECKING:
    from reqpipe.models import RequestConfig, Response


class ReqpipeError(Exception):
    """Base exception for all reqpipe errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ReqpipeError):
    """Raised for invalid CLI arguments or malformed options."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(ReqpipeError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE


class RequestError(ReqpipeError):
    """A delegate call failed.

    Args:
        message: Error description.
        response: The error response when the server replied, else ``None``.
        config: The request that failed.
    """

    def __init__(
        self,
        message: str,
        response: Optional[Response] = None,
        config: Optional[RequestConfig] = None,
    ) -> None:
        super().__init__(message)
        self.response = response
        self.config = config

    @property
    def status(self) -> Optional[int]:
        """HTTP status of the error response, or ``None`` for network failures."""
        return self.response.status if self.response is not None else None


class AuthError(RequestError):
    """The server answered HTTP 401 or 403."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(RequestError):
    """The server answered HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ClientError(RequestError):
    """The server answered with a 4xx status other than 401, 403 and 404."""

    exit_code = EXIT_CLIENT_ERROR


class ServerError(RequestError):
    """The server answered with a 5xx status."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(RequestError):
    """No response was received (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


def error_for_response(response: Response, message: Optional[str] = None) -> RequestError:
    """Build the typed :class:`RequestError` matching *response*'s status.

    Args:
        response: An envelope with a status of 400 or above.
        message: Optional message; defaults to ``"HTTP <status> <text>"``.

    Returns:
        An instance of the subclass for the status family, carrying
        *response* and its originating config.
    """
    status = response.status
    if message is None:
        message = f"HTTP {status} {response.status_text}".rstrip()

    cls: type[RequestError]
    if status in (401, 403):
        cls = AuthError
    elif status == 404:
        cls = NotFoundError
    elif status >= 500:
        cls = ServerError
    else:
        cls = ClientError
    return cls(message, response=response, config=response.config)
