"""CI runner integration.

Renders log records as GitHub Actions workflow commands and registers
secrets with the runner.
"""

from nuve_deprovision.ci.actions import (
    ActionsLogHandler,
    add_mask,
    configure_logging,
    escape_data,
)

__all__ = ["ActionsLogHandler", "add_mask", "configure_logging", "escape_data"]
