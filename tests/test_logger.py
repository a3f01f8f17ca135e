"""
Tests for the request logger.
"""

from structlog.testing import capture_logs

from utilities.logger import RequestLogger


def test_successful_request_logged_as_info():
    """Requests below 500 log at info level."""
    with capture_logs() as logs:
        request_logger = RequestLogger()
        started = request_logger.start_timer()
        request_logger.log_request("GET", "/books", 200, started)

    assert len(logs) == 1
    entry = logs[0]
    assert entry["event"] == "Request handled"
    assert entry["log_level"] == "info"
    assert entry["method"] == "GET"
    assert entry["path"] == "/books"
    assert entry["status_code"] == 200
    assert entry["duration_ms"] >= 0


def test_server_error_logged_as_warning():
    """Server errors log at warning level."""
    with capture_logs() as logs:
        request_logger = RequestLogger()
        request_logger.log_request("POST", "/books", 500, request_logger.start_timer())

    assert logs[0]["log_level"] == "warning"


def test_failure_logged_as_error():
    """Requests that raise are logged with the error."""
    with capture_logs() as logs:
        RequestLogger().log_failure("PUT", "/books/abc", "boom")

    assert logs[0]["log_level"] == "error"
    assert logs[0]["error"] == "boom"
