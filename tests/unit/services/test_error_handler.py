"""
Tests for ErrorHandler service.
"""

from unittest.mock import patch

import pytest

from src.services.error_handler import ErrorHandler
from src.utils.exceptions import ReceiptFetchError


class TestErrorHandler:
    """Test ErrorHandler functionality"""

    @pytest.fixture
    def error_handler(self):
        return ErrorHandler(max_reconnect_attempts=3, reconnect_delay_ms=1500)

    def test_defaults_from_settings(self):
        with patch("src.services.error_handler.settings") as mock_settings:
            mock_settings.MAX_RECONNECT_ATTEMPTS = 7
            mock_settings.RECONNECT_DELAY_MS = 250
            handler = ErrorHandler()
        assert handler.max_reconnect_attempts == 7
        assert handler.reconnect_delay_ms == 250

    def test_handle_rpc_error(self, error_handler):
        with patch.object(error_handler.logger, "error") as mock_log:
            error_handler.handle_rpc_error(Exception("RPC timeout"), {"cursor": 99})
            mock_log.assert_called_once()
            assert mock_log.call_args.args[0] == "Poll error"
            assert mock_log.call_args.kwargs["error_type"] == "Exception"

    def test_handle_receipt_fetch_error(self, error_handler):
        error = ReceiptFetchError(100, {"0xabc": TimeoutError("read timeout")})
        with patch.object(error_handler.logger, "error") as mock_log:
            error_handler.handle_rpc_error(error, {"cursor": 99})
            mock_log.assert_called_once()
            assert mock_log.call_args.args[0] == "Receipt fetch failed"
            assert mock_log.call_args.kwargs["block"] == 100
            assert mock_log.call_args.kwargs["failures"] == {"0xabc": "read timeout"}

    def test_handle_persistence_error(self, error_handler):
        with patch.object(error_handler.logger, "error") as mock_log:
            error_handler.handle_persistence_error(Exception("Connection failed"), {"table": "transactions"})
            mock_log.assert_called_once()

    def test_handle_transaction_error(self, error_handler):
        with patch.object(error_handler.logger, "error") as mock_log:
            error_handler.handle_transaction_error(KeyError("from"), "0xabc", 100)
            mock_log.assert_called_once()
            assert mock_log.call_args.kwargs["tx_hash"] == "0xabc"
            assert mock_log.call_args.kwargs["block"] == 100

    def test_should_retry(self, error_handler):
        assert error_handler.should_retry(1) is True
        assert error_handler.should_retry(3) is True
        assert error_handler.should_retry(4) is False

    def test_get_retry_delay_is_fixed(self, error_handler):
        with patch.object(error_handler.logger, "warning") as mock_log:
            assert error_handler.get_retry_delay(1) == 1.5
            assert error_handler.get_retry_delay(3) == 1.5
            mock_log.assert_called_with("Reconnecting", attempt=3, max_attempts=3, delay=1.5)
