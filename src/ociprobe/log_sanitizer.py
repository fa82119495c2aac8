"""Log sanitization for probe output.

The probe handles two kinds of secrets: the root password embedded in the
instance's cloud-init user-data, and the tenant's API signing key material.
This module redacts both from log lines and error messages before they are
written anywhere:
- password / pass_phrase assignments
- chpasswd "root:<password>" entries
- PEM private key blocks
- base64 user-data payloads
"""

import re
from re import Pattern
from typing import Any


class LogSanitizer:
    """Sanitize sensitive data from logs and error messages.

    All methods are class methods and can be called without instantiation.
    """

    REDACTED = "[REDACTED]"

    # Order matters: more specific patterns should come first
    SECRET_PATTERNS: dict[str, Pattern] = {
        "pass_phrase": re.compile(
            r'(pass[_-]?phrase["\']?\s*[:=]\s*["\']?)([^\s"\'&,\)]+)', re.IGNORECASE
        ),
        "password": re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^\s"\'&,\)]+)', re.IGNORECASE),
        "chpasswd_entry": re.compile(r"(\broot:)([^\s\"',]+)"),
        "user_data": re.compile(r'(user_data["\']?\s*[:=]\s*["\']?)([A-Za-z0-9+/=]+)'),
        "key_content": re.compile(
            r'(key[_-]?content["\']?\s*[:=]\s*["\']?)([^"\'&,\)]+)', re.IGNORECASE
        ),
    }

    PRIVATE_KEY_BLOCK: Pattern = re.compile(
        r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----",
        re.DOTALL,
    )

    SENSITIVE_KEYS = frozenset(
        {"password", "root_password", "pass_phrase", "key_content", "user_data", "secret"}
    )

    @classmethod
    def sanitize(cls, message: Any) -> str:
        """Sanitize message by redacting sensitive patterns.

        Examples:
            >>> LogSanitizer.sanitize("password=hunter2")
            'password=[REDACTED]'
            >>> LogSanitizer.sanitize("    root:hunter2")
            '    root:[REDACTED]'
        """
        if not isinstance(message, str):
            message = str(message)

        result = cls.PRIVATE_KEY_BLOCK.sub(cls.REDACTED, message)
        for pattern in cls.SECRET_PATTERNS.values():
            result = pattern.sub(r"\1" + cls.REDACTED, result)
        return result

    @classmethod
    def sanitize_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of data with sensitive values redacted (recursively)."""
        result: dict[str, Any] = {}
        for key, value in data.items():
            if key.lower() in cls.SENSITIVE_KEYS:
                result[key] = cls.REDACTED
            elif isinstance(value, dict):
                result[key] = cls.sanitize_dict(value)
            elif isinstance(value, str):
                result[key] = cls.sanitize(value)
            else:
                result[key] = value
        return result

    @classmethod
    def create_safe_error_message(cls, error: BaseException, context: str = "") -> str:
        """Create error message with secrets sanitized.

        Examples:
            >>> LogSanitizer.create_safe_error_message(ValueError("password=x"), "Launch")
            'Launch: password=[REDACTED]'
        """
        sanitized_msg = cls.sanitize(str(error))
        if context:
            return f"{context}: {sanitized_msg}"
        return sanitized_msg


__all__ = ["LogSanitizer"]
