"""
Unit Tests for Authentication
=============================
"""

import pytest

from cardrender.api.auth import extract_bearer_token, is_write_allowed
from cardrender.api.main import check_write_policy
from cardrender.config.settings import Settings


class TestBearerToken:
    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer abc", "abc"),
            ("bearer   abc  ", "abc"),
            ("Basic abc", None),
            ("Bearer ", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, header, expected):
        assert extract_bearer_token(header) == expected


class TestWritePolicy:
    def test_token_required_when_configured(self):
        settings = Settings(environment="testing", api_bearer_token="s3cret")

        assert is_write_allowed(settings, "Bearer s3cret")
        assert not is_write_allowed(settings, "Bearer wrong")
        assert not is_write_allowed(settings, None)

    def test_open_writes_outside_production(self):
        settings = Settings(environment="development")

        assert settings.allow_unauthenticated_write is True
        assert is_write_allowed(settings, None)

    def test_production_defaults_closed(self):
        settings = Settings(environment="production")

        assert settings.allow_unauthenticated_write is False
        assert not is_write_allowed(settings, None)
        with pytest.raises(RuntimeError):
            check_write_policy(settings)

    def test_production_with_explicit_opt_in(self):
        settings = Settings(environment="production", allow_unauthenticated_write=True)
        check_write_policy(settings)
        assert is_write_allowed(settings, None)

    def test_blank_token_is_unset(self):
        assert Settings(environment="testing", api_bearer_token="  ").api_bearer_token is None
