"""Logging utilities for sanitizing and shortening log messages."""
import re

# Pre-compiled regex to find Authorization headers with tokens
_AUTH_HEADER_RE = re.compile(
    r'(?i)("?authorization"?\s*[:=]\s*"?(?:bearer|token)\s*)([^"\s]+)("?)'
)

# Maximum number of characters of user input echoed into log records
MAX_INPUT_LOG_LEN = 50


def redact_auth_headers(message: str) -> str:
    """Redact Authorization header values in a log message.

    This prevents accidental exposure of the agent API key when logging
    exceptions raised by the HTTP client.
    """
    return _AUTH_HEADER_RE.sub(lambda m: m.group(1) + "[REDACTED]" + m.group(3), message)


def truncate_for_log(text: str, max_len: int = MAX_INPUT_LOG_LEN) -> str:
    """Shorten user supplied text before it is written to a log record.

    Parameters
    ----------
    text:
        The raw chat message.
    max_len:
        Number of characters to keep.

    Returns
    -------
    str
        The first ``max_len`` characters followed by ``...`` when the text
        was cut.
    """
    text = text.replace("\n", " ")
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."
