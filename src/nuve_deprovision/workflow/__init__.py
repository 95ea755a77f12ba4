"""Deprovisioning workflow.

Authenticate, resolve the instance by name, request deletion and wait for
the instance to disappear from the account's listing.
"""

from nuve_deprovision.workflow.deprovision import (
    DeprovisionWorkflow,
    deprovision,
    find_instance_by_name,
    is_listed,
)

__all__ = ["DeprovisionWorkflow", "deprovision", "find_instance_by_name", "is_listed"]
