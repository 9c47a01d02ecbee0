"""
Tests for runtime configuration.
"""
import pytest

from core import config


class TestTransportMode:
    """Tests for the transport mode getter/setter."""

    def setup_method(self):
        self.original = config.get_transport_mode()

    def teardown_method(self):
        config.set_transport_mode(self.original)

    def test_set_valid_mode(self):
        config.set_transport_mode("streamable-http")

        assert config.get_transport_mode() == "streamable-http"

    def test_invalid_mode_is_rejected(self):
        with pytest.raises(ValueError):
            config.set_transport_mode("carrier-pigeon")

        assert config.get_transport_mode() == self.original


class TestDefaults:
    """Tests for rendering defaults."""

    def test_rendering_defaults_are_ints(self):
        assert isinstance(config.ASSET_SECTION_MIN_PADDING, int)
        assert isinstance(config.SECTION_TITLE_FONT_SIZE, int)
        assert isinstance(config.SECTION_BODY_FONT_SIZE, int)

    def test_scopes_cover_docs_and_drive(self):
        assert "https://www.googleapis.com/auth/documents" in config.SCOPES
        assert "https://www.googleapis.com/auth/drive" in config.SCOPES
