"""GitHub Actions integration for logging and secret masking.

The runner reads workflow commands such as ``::debug::message`` and
``::add-mask::value`` from a step's standard output. This module renders
standard-library log records as those commands so the rest of the code can
log through ``logging`` as usual.

Example:
    >>> settings = get_settings()
    >>> masker = configure_logging(settings)
    >>> masker.add(settings.password.get_secret_value())
"""

import logging
import sys
from typing import Final, TextIO

from nuve_deprovision.config.settings import Settings
from nuve_deprovision.utils.redaction import SecretMasker

logger: Final = logging.getLogger(__name__)

LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Workflow command per log level; levels not listed are printed as-is
_LEVEL_COMMANDS: Final[dict[int, str]] = {
    logging.DEBUG: "debug",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


def escape_data(value: str) -> str:
    """Escape a workflow command payload.

    Example:
        >>> escape_data("50% done\\nnext line")
        '50%25 done%0Anext line'
    """
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def add_mask(value: str, stream: TextIO | None = None) -> None:
    """Tell the runner to mask ``value`` in all subsequent step output."""
    if not value:
        return
    print(f"::add-mask::{escape_data(value)}", file=stream or sys.stdout, flush=True)


class ActionsLogHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Log handler that emits records as GitHub Actions workflow commands.

    DEBUG records become ``::debug::``, WARNING ``::warning::``, ERROR and
    CRITICAL ``::error::``. INFO records are printed as plain lines, which is
    how progress messages show up in the job log.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__(stream or sys.stdout)
        self.setFormatter(logging.Formatter("%(message)s"))

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        command = _LEVEL_COMMANDS.get(record.levelno)
        if command is None:
            return message
        return f"::{command}::{escape_data(message)}"


def configure_logging(settings: Settings, masker: SecretMasker | None = None) -> SecretMasker:
    """Configure root logging for an action run.

    Inside GitHub Actions every record goes through ``ActionsLogHandler`` at
    DEBUG level, since the runner itself hides debug commands unless step
    debugging is enabled. Elsewhere a plain stream handler is installed at
    the configured level.

    In both cases the secret masker is attached to every root handler.

    Args:
        settings: Action settings.
        masker: Masker to install. If None, a new one is created which, inside
            GitHub Actions, also registers each secret with the runner.

    Returns:
        The installed SecretMasker.
    """
    if masker is None:
        masker = SecretMasker(on_register=add_mask if settings.github_actions else None)

    if settings.github_actions:
        logging.basicConfig(level=logging.DEBUG, handlers=[ActionsLogHandler()], force=True)
    else:
        logging.basicConfig(
            level=getattr(logging, settings.effective_log_level),
            format=LOG_FORMAT,
            force=True,
        )

    for handler in logging.getLogger().handlers:
        handler.addFilter(masker)

    logger.debug(
        f"Logging configured (github_actions={settings.github_actions}, "
        f"level={logging.getLevelName(logging.getLogger().level)})"
    )
    return masker
