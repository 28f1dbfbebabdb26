"""Transport classes: the fetch-style primitive behind every call."""

from dropin_request.transport.reqwest import PyreqwestResponse, PyreqwestTransport, default_transport
from dropin_request.transport.types import Transport, TransportResponse

__all__ = [
    "PyreqwestResponse",
    "PyreqwestTransport",
    "Transport",
    "TransportResponse",
    "default_transport",
]
