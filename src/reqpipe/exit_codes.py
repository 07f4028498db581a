"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to an error category and is referenced by the
corresponding :class:`~reqpipe.exceptions.ReqpipeError` subclass, so shell
scripts wrapping ``reqpipe request`` can branch on the failure class.

Example::

    $ reqpipe request GET https://api.example.com/missing
    $ echo $?
    4   # EXIT_NOT_FOUND
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_AUTH_FAILURE = 3
"""The server rejected the request with HTTP 401 or 403."""

EXIT_NOT_FOUND = 4
"""The server answered HTTP 404."""

EXIT_SERVER_ERROR = 5
"""The server answered with an HTTP 5xx status after all retries."""

EXIT_CONNECTION_ERROR = 6
"""No response was received (timeout, DNS failure, connection refused)."""

EXIT_CLIENT_ERROR = 7
"""The server answered with another HTTP 4xx status."""
