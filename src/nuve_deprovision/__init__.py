"""nuve-deprovision - GitHub Action that deletes a Nuve platform instance.

This package logs in to the Nuve platform, finds an instance by name,
requests its deletion and waits until the instance is gone.
"""

from nuve_deprovision.version import __version__

__author__ = "nuve-deprovision Contributors"
__license__ = "MIT"

__all__ = ["__author__", "__license__", "__version__"]
