"""dropin_request pytest plugin for mocking the transport of request instances."""

from .mock import Mock, MockedResponse, TransportMocker, request_mocker

__all__ = [  # noqa: RUF022
    "request_mocker",
    "TransportMocker",
    "Mock",
    "MockedResponse",
]
