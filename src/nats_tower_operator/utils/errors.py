"""Error sanitization utilities to keep credential material out of logs and events."""

import re

# NATS credential material and tokens that may end up in error messages
SENSITIVE_PATTERNS = [
    # User JWTs inside a creds file or response body
    (r"-----BEGIN NATS USER JWT-----.*?------END NATS USER JWT------", "[REDACTED JWT]"),
    (r"-----BEGIN USER NKEY SEED-----.*?------END USER NKEY SEED------", "[REDACTED SEED]"),
    # NKey seeds (operator, account, user)
    (r"\bS[OAU][A-Z2-7]{56}\b", "[REDACTED SEED]"),
    # Bare JWTs
    (r"\beyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+", "[REDACTED JWT]"),
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "creds",
    "credentials",
    "token",
    "x-token",
    "password",
    "seed",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove credential material.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, replacement, sanitized, flags=re.DOTALL)

    for field in SENSITIVE_FIELDS:
        # "field": "value" as found in JSON bodies
        sanitized = re.sub(
            rf'"{re.escape(field)}"\s*:\s*"[^"]*"',
            f'"{field}": "[REDACTED]"',
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: BaseException) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))

