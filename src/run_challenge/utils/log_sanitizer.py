"""Log filter that keeps OAuth and session credentials out of logs.

Strava access and refresh tokens, the client secret, authorization codes
and our own session JWTs all pass through request handling; this filter
redacts them before a record is emitted.

Usage:
    from run_challenge.utils.log_sanitizer import install_log_sanitizer

    install_log_sanitizer()
"""

import logging
import re
from typing import Any


# key=value / "key": "value" pairs whose value is always redacted
SECRET_FIELDS = ("authorization", "client_secret", "access_token", "refresh_token", "secret")


def _field_pattern(*names: str) -> re.Pattern:
    joined = "|".join(re.escape(n) for n in names)
    return re.compile(rf'((?:{joined})["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE)


class LogSanitizationFilter(logging.Filter):
    """Redacts credentials from log messages and their args."""

    # Applied in order; the JWT rule must run before the Bearer rule
    PATTERNS: list[tuple[re.Pattern, str]] = [
        (re.compile(r'\beyJ[\w-]+\.eyJ[\w-]+\.[\w-]+'), '[REDACTED_JWT]'),
        (re.compile(r'Bearer\s+[\w.-]+', re.IGNORECASE), 'Bearer [REDACTED_TOKEN]'),
        (_field_pattern(*SECRET_FIELDS), r'\1[REDACTED]'),
        # Authorization codes on the OAuth callback
        (re.compile(r'(\bcode["\']?\s*[:=]\s*["\']?)[\w-]{20,}', re.IGNORECASE), r'\1[REDACTED]'),
        # Strava tokens are 40 hex characters
        (re.compile(r'\b[a-fA-F0-9]{32,}\b'), '[REDACTED_HEX_TOKEN]'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = self.redact(str(record.msg))
        if record.args:
            record.args = self.redact_args(record.args)
        return True

    def redact(self, text: str) -> str:
        for pattern, replacement in self.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def redact_args(self, args: Any) -> Any:
        """Redact inside str/tuple/list/dict args; other values only if they print a secret."""
        if isinstance(args, str):
            return self.redact(args)
        if isinstance(args, (tuple, list)):
            return type(args)(self.redact_args(a) for a in args)
        if isinstance(args, dict):
            return {key: self.redact_args(value) for key, value in args.items()}

        text = str(args)
        cleaned = self.redact(text)
        return args if cleaned == text else cleaned


def install_log_sanitizer(logger_name: str | None = None) -> None:
    """Install the filter on one named logger, or on root and its handlers.

    Root logger filters do not see records propagated from child loggers,
    so the handlers get the filter too.
    """
    sanitizer = LogSanitizationFilter()

    if logger_name:
        logging.getLogger(logger_name).addFilter(sanitizer)
        return

    root_logger = logging.getLogger()
    root_logger.addFilter(sanitizer)
    for handler in root_logger.handlers:
        handler.addFilter(sanitizer)


def sanitize_string(text: str) -> str:
    """Redact credentials from a string outside the logging system."""
    return LogSanitizationFilter().redact(text)
