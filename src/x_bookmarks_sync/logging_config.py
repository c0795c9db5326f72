"""Configure logging for the application.

Log lines can carry OAuth material (bearer headers in httpx debug output,
token payloads echoed back in error bodies), so every record passes through
SecretRedactingFilter before it is written.
"""

import logging
import re
import sys

LOGGER_NAME = "x_bookmarks_sync"
MAX_LOGGED_BODY = 500

_SECRET_PATTERNS = [
    re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.I),
    re.compile(
        r"""(["']?(?:access_token|refresh_token|client_secret|code_verifier)["']?\s*[:=]\s*["']?)[^"'&\s,}]+""",
        re.I,
    ),
]


def redact_secrets(text: str) -> str:
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(r"\1[REDACTED]", text)
    return text


def truncate_for_log(text: str | None, max_length: int = MAX_LOGGED_BODY) -> str:
    """Shorten a response body before it goes into a log line or error message."""
    if not text:
        return ""
    text = redact_secrets(text)
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}... (truncated, {len(text)} chars)"


class SecretRedactingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    # On the handler so records from httpx are covered too
    handler.addFilter(SecretRedactingFilter())

    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(level)
    # Repeated CLI invocations in one process must not stack handlers
    app_logger.handlers = [handler]

    # httpx logs request lines at INFO; only show them with --verbose
    httpx_level = logging.DEBUG if debug else logging.WARNING
    for name in ("httpx", "httpcore"):
        library_logger = logging.getLogger(name)
        library_logger.setLevel(httpx_level)
        library_logger.handlers = [handler] if debug else []
        library_logger.propagate = not debug
