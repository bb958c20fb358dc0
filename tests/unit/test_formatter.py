"""
Unit tests for the external formatter wrapper.
"""

import logging
import subprocess
from unittest.mock import patch, MagicMock

import pytest

from vue_migrate.core.config import MigrateConfig
from vue_migrate.core.errors import FormatterError
from vue_migrate.core.formatter import format_sfc, run_formatter


class TestRunFormatter:
    """Test cases for run_formatter."""

    @patch("vue_migrate.core.formatter.subprocess.run")
    def test_returns_stdout(self, mock_run):
        mock_run.return_value = MagicMock(stdout="formatted\n")

        assert run_formatter("raw", ["prettier"], 5) == "formatted\n"
        args, kwargs = mock_run.call_args
        assert args[0] == ["prettier"]
        assert kwargs["input"] == "raw"
        assert kwargs["timeout"] == 5
        assert kwargs["check"] is True

    @pytest.mark.parametrize("error", [
        subprocess.CalledProcessError(2, ["prettier"], stderr="SyntaxError: x"),
        subprocess.TimeoutExpired(["prettier"], 5),
        FileNotFoundError("npx"),
    ])
    def test_failures_raise_formatter_error(self, error):
        with patch("vue_migrate.core.formatter.subprocess.run", side_effect=error):
            with pytest.raises(FormatterError):
                run_formatter("raw", ["prettier"], 5)

    @patch("vue_migrate.core.formatter.subprocess.run")
    def test_empty_output_is_an_error(self, mock_run):
        mock_run.return_value = MagicMock(stdout="  \n")

        with pytest.raises(FormatterError):
            run_formatter("raw", ["prettier"])

    def test_empty_command(self):
        with pytest.raises(FormatterError):
            run_formatter("raw", [])


class TestFormatSfc:
    """Test cases for format_sfc."""

    @patch("vue_migrate.core.formatter.subprocess.run")
    def test_disabled_formatting_skips_subprocess(self, mock_run):
        assert format_sfc("raw", MigrateConfig(format_output=False)) == "raw"
        mock_run.assert_not_called()

    @patch("vue_migrate.core.formatter.subprocess.run", side_effect=FileNotFoundError("npx"))
    def test_failure_returns_input(self, mock_run, caplog):
        with caplog.at_level(logging.WARNING):
            assert format_sfc("raw", MigrateConfig()) == "raw"

        assert "Formatting skipped" in caplog.text

    @patch("vue_migrate.core.formatter.subprocess.run")
    def test_uses_configured_command(self, mock_run):
        mock_run.return_value = MagicMock(stdout="ok")
        config = MigrateConfig(formatter_command=["biome", "format", "--stdin-file-path=a.vue"], formatter_timeout=9)

        assert format_sfc("raw", config) == "ok"
        assert mock_run.call_args[0][0][0] == "biome"
        assert mock_run.call_args[1]["timeout"] == 9
