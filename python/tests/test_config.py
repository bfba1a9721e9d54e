"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from mediashelf.config import Environment, Settings


def _make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults + overrides."""
    defaults = {
        "DATABASE_URL": "postgresql+psycopg://localhost/test",
        "MEDIASHELF_ENV": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class TestSettingsDefaults:
    def test_listing_defaults(self):
        s = _make_settings()
        assert s.default_page_size == 20
        assert s.max_page_size == 100
        assert s.default_collection_name == "Default"

    def test_internal_header_not_required_outside_deployments(self):
        assert _make_settings(MEDIASHELF_ENV="local").requires_internal_header is False
        assert _make_settings(MEDIASHELF_ENV="test").requires_internal_header is False


class TestSettingsValidation:
    def test_staging_requires_internal_secret(self):
        with pytest.raises(ValidationError, match="MEDIASHELF_INTERNAL_SECRET"):
            _make_settings(MEDIASHELF_ENV="staging")

    def test_prod_with_secret_requires_internal_header(self):
        s = _make_settings(MEDIASHELF_ENV="prod", MEDIASHELF_INTERNAL_SECRET="s3cret")
        assert s.mediashelf_env == Environment.PROD
        assert s.requires_internal_header is True

    def test_default_page_size_cannot_exceed_max(self):
        with pytest.raises(ValidationError, match="DEFAULT_PAGE_SIZE"):
            _make_settings(DEFAULT_PAGE_SIZE=50, MAX_PAGE_SIZE=10)

    def test_zero_page_size_rejected(self):
        with pytest.raises(ValidationError):
            _make_settings(DEFAULT_PAGE_SIZE=0)

    def test_max_page_size_is_capped_at_100(self):
        with pytest.raises(ValidationError, match="MAX_PAGE_SIZE"):
            _make_settings(MAX_PAGE_SIZE=5000)

    def test_unknown_environment_rejected(self):
        with pytest.raises(ValidationError):
            _make_settings(MEDIASHELF_ENV="qa")
