"""
Pretty-printing of generated components through an external formatter.

The default command runs prettier from the project's node_modules. Any
failure (missing binary, non-zero exit, timeout) is logged and the
unformatted text is returned instead.
"""

import logging
import subprocess
from typing import List, Optional

from vue_migrate.core.config import MigrateConfig
from vue_migrate.core.errors import FormatterError


def run_formatter(text: str, command: List[str], timeout: Optional[int] = None) -> str:
    """Run ``command`` with ``text`` on stdin and return its stdout."""
    if not command:
        raise FormatterError("No formatter command configured")
    try:
        result = subprocess.run(
            command,
            input=text,
            capture_output=True,
            text=True,
            encoding="utf-8",
            timeout=timeout,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip().splitlines()
        detail = stderr[0] if stderr else f"exit status {e.returncode}"
        raise FormatterError(f"{command[0]} failed: {detail}") from e
    except subprocess.TimeoutExpired as e:
        raise FormatterError(f"{command[0]} timed out after {timeout}s") from e
    except OSError as e:
        raise FormatterError(f"Could not run {command[0]}: {e}") from e
    if not result.stdout.strip():
        raise FormatterError(f"{command[0]} produced no output")
    return result.stdout


def format_sfc(text: str, config: MigrateConfig) -> str:
    """Format a generated component, falling back to ``text`` on any formatter failure."""
    if not config.format_output:
        return text
    try:
        return run_formatter(text, config.formatter_command, config.formatter_timeout)
    except FormatterError as e:
        logging.warning(f"Formatting skipped: {e}")
        return text
