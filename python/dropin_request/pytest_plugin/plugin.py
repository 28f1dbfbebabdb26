import pytest

from .mock import request_mocker  # load the request_mocker fixture

pytest.register_assert_rewrite("dropin_request.pytest_plugin.internal.assert_message")
