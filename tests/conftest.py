import pytest

from dropin_request import Request, create_instance
from dropin_request.pytest_plugin import TransportMocker, request_mocker  # noqa: F401


@pytest.fixture
def mocker(request_mocker: TransportMocker) -> TransportMocker:
    return request_mocker.strict()


@pytest.fixture
def client() -> Request:
    return create_instance()
