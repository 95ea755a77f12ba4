"""Utility modules for nuve-deprovision.

This package provides:
- Key-based payload redaction for request/response debug logs
- A logging filter that masks registered secret values
"""

from nuve_deprovision.utils.redaction import SecretMasker, is_sensitive_key, sanitize_payload

__all__ = ["SecretMasker", "is_sensitive_key", "sanitize_payload"]
