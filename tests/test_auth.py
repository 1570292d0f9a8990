"""Unit tests for API key authentication module."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from throttle.core.auth import is_known_api_key, parse_api_keys, validate_api_key, verify_api_key
from throttle.core.errors import AuthenticationAppError
from throttle.core.logging import hash_identifier


def _request() -> SimpleNamespace:
    return SimpleNamespace(state=SimpleNamespace())


class TestParseAPIKeys:
    """Test API key parsing utility function."""

    def test_parse_multiple_keys(self) -> None:
        assert parse_api_keys("key1,key2,key3") == {"key1", "key2", "key3"}

    def test_parse_keys_with_whitespace(self) -> None:
        assert parse_api_keys("key1 , key2  ,  key3") == {"key1", "key2", "key3"}

    @pytest.mark.parametrize("raw", [None, "", "   ,  ,  "])
    def test_parse_empty_inputs(self, raw) -> None:
        assert parse_api_keys(raw) == set()

    def test_parse_removes_duplicate_keys(self) -> None:
        assert parse_api_keys("key1,key2,key1") == {"key1", "key2"}


class TestValidateAPIKey:
    """Test core API key validation logic."""

    @patch("throttle.core.auth.settings")
    def test_validate_bypassed_when_auth_disabled(self, mock_settings) -> None:
        mock_settings.app.api_key_required = False

        validate_api_key("any-random-key")
        validate_api_key("")

    @patch("throttle.core.auth.settings")
    def test_validate_raises_when_no_keys_configured(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = None

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("some-key")

        assert exc_info.value.code == "api_keys_not_configured"

    @patch("throttle.core.auth.settings")
    def test_validate_accepts_valid_key(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "valid-key-1,valid-key-2"

        validate_api_key("valid-key-1")
        validate_api_key("valid-key-2")

    @patch("throttle.core.auth.settings")
    def test_validate_rejects_invalid_key(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "valid-key-1,valid-key-2"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key(" valid-key-1 ")

        assert exc_info.value.code == "invalid_api_key"


class TestIsKnownAPIKey:
    """Test the lookup used by rate limit key strategies."""

    @patch("throttle.core.auth.settings")
    def test_configured_key_is_known(self, mock_settings) -> None:
        mock_settings.app.api_keys = "valid-key-1,valid-key-2"

        assert is_known_api_key("valid-key-2") is True

    @pytest.mark.parametrize("provided", [None, "", "forged-key"])
    @patch("throttle.core.auth.settings")
    def test_missing_or_unconfigured_key_is_unknown(self, mock_settings, provided) -> None:
        mock_settings.app.api_keys = "valid-key-1"

        assert is_known_api_key(provided) is False

    @patch("throttle.core.auth.settings")
    def test_nothing_is_known_without_configured_keys(self, mock_settings) -> None:
        mock_settings.app.api_keys = None

        assert is_known_api_key("any-key") is False


class TestVerifyAPIKeyDependency:
    """Test FastAPI dependency for API key verification."""

    @pytest.mark.asyncio
    @patch("throttle.core.auth.settings")
    async def test_verify_bypassed_when_auth_disabled(self, mock_settings) -> None:
        mock_settings.app.api_key_required = False
        request = _request()

        await verify_api_key(request, x_api_key=None)

        assert not hasattr(request.state, "user_id")

    @pytest.mark.asyncio
    @patch("throttle.core.auth.settings")
    async def test_verify_raises_when_header_missing(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "valid-key"

        with pytest.raises(AuthenticationAppError) as exc_info:
            await verify_api_key(_request(), x_api_key=None)

        assert exc_info.value.code == "missing_api_key"
        assert "Missing API key" in exc_info.value.message

    @pytest.mark.asyncio
    @patch("throttle.core.auth.settings")
    async def test_verify_raises_when_key_invalid(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "valid-key"
        request = _request()

        with pytest.raises(AuthenticationAppError) as exc_info:
            await verify_api_key(request, x_api_key="wrong-key")

        assert exc_info.value.code == "invalid_api_key"
        assert not hasattr(request.state, "user_id")

    @pytest.mark.asyncio
    @patch("throttle.core.auth.settings")
    async def test_verify_records_principal_for_user_rate_limits(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "my-valid-key,another-key"
        request = _request()

        await verify_api_key(request, x_api_key="my-valid-key")

        assert request.state.user_id == hash_identifier("my-valid-key")
        assert "my-valid-key" not in request.state.user_id
