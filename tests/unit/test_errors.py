from agent_dispatch.errors import FatalError, RetryableError, classify_provider_error


class _StatusError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"status {status_code}")
        self.status_code = status_code


class APITimeoutError(Exception):
    pass


def test_rate_limits_and_server_errors_are_retryable() -> None:
    for code in (408, 429, 500, 503):
        assert isinstance(classify_provider_error(_StatusError(code)), RetryableError)


def test_client_errors_are_fatal() -> None:
    for code in (400, 401, 404):
        assert isinstance(classify_provider_error(_StatusError(code)), FatalError)


def test_timeouts_and_connection_errors_are_retryable() -> None:
    assert isinstance(classify_provider_error(TimeoutError()), RetryableError)
    assert isinstance(classify_provider_error(ConnectionResetError("reset")), RetryableError)
    assert isinstance(classify_provider_error(APITimeoutError("slow")), RetryableError)


def test_capability_errors_pass_through() -> None:
    error = FatalError("bad input")

    assert classify_provider_error(error) is error


def test_unknown_errors_are_fatal() -> None:
    classified = classify_provider_error(ValueError("boom"))

    assert isinstance(classified, FatalError)
    assert "ValueError: boom" in str(classified)
