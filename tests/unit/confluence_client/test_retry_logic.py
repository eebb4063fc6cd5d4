"""Unit tests for confluence_client.retry_logic module."""

import pytest
from unittest.mock import patch, MagicMock

from src.confluence_client.retry_logic import retry_on_rate_limit, _is_rate_limit_error
from src.confluence_client.errors import APIAccessError


class TestIsRateLimitError:
    """Test cases for _is_rate_limit_error function."""

    def test_detects_429_in_message(self):
        """_is_rate_limit_error should detect '429' in exception message."""
        assert _is_rate_limit_error(Exception("HTTP 429 Too Many Requests")) is True

    def test_detects_rate_limit_text_in_message(self):
        """_is_rate_limit_error should detect 'rate limit exceeded' in exception message."""
        assert _is_rate_limit_error(Exception("Rate limit exceeded")) is True

    def test_detects_status_code_attribute(self):
        """_is_rate_limit_error should detect status_code=429 attribute."""
        error = Exception("API error")
        error.status_code = 429
        assert _is_rate_limit_error(error) is True

    def test_detects_response_status_code_attribute(self):
        """_is_rate_limit_error should detect response.status_code=429 attribute."""
        error = Exception("API error")
        error.response = MagicMock()
        error.response.status_code = 429
        assert _is_rate_limit_error(error) is True

    def test_returns_false_for_non_rate_limit_error(self):
        """_is_rate_limit_error should return False for non-rate-limit errors."""
        assert _is_rate_limit_error(Exception("Something went wrong")) is False

    def test_returns_false_for_404_status_code(self):
        """_is_rate_limit_error should return False for other status codes."""
        error = Exception("Not found")
        error.status_code = 404
        assert _is_rate_limit_error(error) is False


class TestRetryOnRateLimit:
    """Test cases for retry_on_rate_limit function."""

    def test_success_on_first_attempt(self):
        """retry_on_rate_limit should return result on first successful attempt."""
        mock_func = MagicMock(return_value="success")
        result = retry_on_rate_limit(mock_func, "arg1", kwarg1="value1")

        assert result == "success"
        mock_func.assert_called_once_with("arg1", kwarg1="value1")

    @patch('time.sleep')
    def test_exponential_backoff_timing(self, mock_sleep):
        """retry_on_rate_limit should use exponential backoff: 1s, 2s, 4s."""
        rate_limit_error = Exception("429")
        mock_func = MagicMock(side_effect=[rate_limit_error, rate_limit_error, rate_limit_error, "success"])

        result = retry_on_rate_limit(mock_func)

        assert result == "success"
        assert mock_func.call_count == 4
        calls = [call[0][0] for call in mock_sleep.call_args_list]
        assert calls == [1, 2, 4]

    @patch('time.sleep')
    def test_raises_api_access_error_after_max_retries(self, mock_sleep):
        """retry_on_rate_limit should raise APIAccessError after exhausting retries."""
        mock_func = MagicMock(side_effect=Exception("429 Too Many Requests"))

        with pytest.raises(APIAccessError) as exc_info:
            retry_on_rate_limit(mock_func)

        assert str(exc_info.value) == "Confluence API failure (after 3 retries)"
        assert mock_func.call_count == 4
        assert mock_sleep.call_count == 3

    def test_fails_fast_on_non_rate_limit_error(self):
        """retry_on_rate_limit should not retry on non-rate-limit errors."""
        mock_func = MagicMock(side_effect=Exception("Page not found"))

        with pytest.raises(Exception) as exc_info:
            retry_on_rate_limit(mock_func)

        assert str(exc_info.value) == "Page not found"
        assert mock_func.call_count == 1
