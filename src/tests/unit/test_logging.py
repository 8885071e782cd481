"""Unit tests for logging configuration."""

from unittest.mock import MagicMock, patch

from ratewarden.logging import _add_component, setup_logging


class TestLogging:
    """Tests for logging setup."""

    @patch("ratewarden.logging.get_settings")
    @patch("ratewarden.logging.structlog")
    def test_setup_logging_json(self, mock_structlog, mock_get_settings):
        """Test logging setup with JSON format."""
        mock_settings = MagicMock()
        mock_settings.log_format = "json"
        mock_settings.log_level = "INFO"
        mock_get_settings.return_value = mock_settings

        setup_logging()

        mock_structlog.configure.assert_called_once()
        processors = mock_structlog.configure.call_args.kwargs["processors"]
        assert mock_structlog.processors.format_exc_info in processors

    @patch("ratewarden.logging.get_settings")
    @patch("ratewarden.logging.structlog")
    def test_setup_logging_console(self, mock_structlog, mock_get_settings):
        """Test logging setup with console format."""
        mock_settings = MagicMock()
        mock_settings.log_format = "console"
        mock_settings.log_level = "DEBUG"
        mock_get_settings.return_value = mock_settings

        setup_logging()

        mock_structlog.configure.assert_called_once()
        mock_structlog.dev.ConsoleRenderer.assert_called_once()

    def test_component_added(self):
        event = _add_component(None, "info", {"event": "janitor_started"})

        assert event["component"] == "ratewarden"
