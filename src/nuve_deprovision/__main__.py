"""nuve-deprovision main entry point."""

import asyncio
import logging
import os
import sys
from typing import Final

from nuve_deprovision.ci.actions import configure_logging
from nuve_deprovision.config.settings import Settings, get_settings
from nuve_deprovision.platform.exceptions import ConfigurationError, NuveError, describe_error
from nuve_deprovision.version import get_version
from nuve_deprovision.workflow.deprovision import deprovision

logger: Final = logging.getLogger(__name__)


def _bootstrap_settings() -> Settings:
    """Settings that only drive logging, usable when the inputs are invalid."""
    return Settings.model_construct(
        github_actions=os.environ.get("GITHUB_ACTIONS", "").lower() == "true",
        runner_debug=False,
        log_level="INFO",
    )


def main() -> int:
    """Main entry point for the action.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    try:
        settings = get_settings()
    except ConfigurationError as e:
        configure_logging(_bootstrap_settings())
        logger.error(describe_error(e))
        return 1

    masker = configure_logging(settings)
    masker.add(settings.password.get_secret_value())
    logger.debug(f"nuve-deprovision {get_version()}")

    try:
        asyncio.run(deprovision(settings, secret_masker=masker))
    except NuveError as e:
        logger.error(describe_error(e))
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {describe_error(e)}")
        return 1

    logger.info("Instance shutdown success.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
