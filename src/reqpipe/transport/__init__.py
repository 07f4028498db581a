"""Transport requestors -- the innermost link of every chain.

:class:`HttpxRequestor` performs real network calls through
:class:`httpx.AsyncClient` and translates transport failures into the
uniform :class:`~reqpipe.exceptions.RequestError` shape the decorators
rely on.
"""

from reqpipe.transport.httpx_transport import HttpxRequestor, extract_response_data

__all__ = ["HttpxRequestor", "extract_response_data"]
