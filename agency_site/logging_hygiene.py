"""
Logging Hygiene Module

This module scrubs secrets from log output: LLM provider keys, webhook
signatures, shared secrets passed as query parameters, bearer tokens and
the hook URLs used for deployments and chat notifications. It also provides
the audit logger used for security-relevant events such as rejected webhook
signatures and rate-limit rejections.
"""

import logging
import os
import re
from typing import Any, Dict, List, Optional, Pattern, Union

_audit_logger: Optional[logging.Logger] = None


class SensitiveDataFilter(logging.Filter):
    """
    Logging filter that masks sensitive data in log records.

    The filter never drops a record; it rewrites the message and string
    arguments in place.
    """

    def __init__(self, patterns: Optional[List[Dict[str, Union[str, Pattern]]]] = None):
        """
        Initialize the sensitive data filter.

        Args:
            patterns: Extra pattern dictionaries with 'pattern', 'replacement'
                and 'description' keys
        """
        super().__init__()
        self.logger = logging.getLogger(__name__)

        self.default_patterns = [
            {
                "pattern": re.compile(r"sk-[a-zA-Z0-9_-]{6,}"),
                "replacement": "[REDACTED]",
                "description": "OpenAI API key",
            },
            {
                "pattern": re.compile(r"sha256=[0-9a-f]{16,}", re.IGNORECASE),
                "replacement": "sha256=[REDACTED]",
                "description": "Webhook signature",
            },
            {
                "pattern": re.compile(r"([?&](?:secret|apiKey|api_key|token)=)[^&\s]+", re.IGNORECASE),
                "replacement": r"\1[REDACTED]",
                "description": "Secret query parameter",
            },
            {
                "pattern": re.compile(r"Bearer\s+[a-zA-Z0-9._-]+", re.IGNORECASE),
                "replacement": "Bearer [REDACTED]",
                "description": "Bearer token",
            },
            {
                "pattern": re.compile(r"https://hooks\.slack\.com/services/[A-Za-z0-9/_-]+"),
                "replacement": "https://hooks.slack.com/services/[REDACTED]",
                "description": "Slack webhook URL",
            },
            {
                "pattern": re.compile(r"(https://api\.vercel\.com/v1/integrations/deploy/)[A-Za-z0-9/_-]+"),
                "replacement": r"\1[REDACTED]",
                "description": "Deploy hook URL",
            },
            {
                "pattern": re.compile(
                    r'(secret|private[_-]?key|api[_-]?key)(["\s]*[:=]["\s]*)([a-zA-Z0-9_-]{8,})',
                    re.IGNORECASE,
                ),
                "replacement": r"\1\2[REDACTED]",
                "description": "Secret assignment",
            },
            {
                "pattern": re.compile(r"redis://([^:@/\s]*):([^@\s]+)@", re.IGNORECASE),
                "replacement": r"redis://\1:[REDACTED]@",
                "description": "Redis connection string",
            },
        ]

        self.patterns = self.default_patterns.copy()
        if patterns:
            self.patterns.extend(patterns)

        self.logger.debug(f"Initialized sensitive data filter with {len(self.patterns)} patterns")

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Mask sensitive data in a log record.

        Args:
            record: Log record to filter

        Returns:
            bool: Always True
        """
        try:
            if record.msg:
                record.msg = self.sanitize_text(str(record.msg))

            if record.args and isinstance(record.args, tuple):
                record.args = tuple(
                    self.sanitize_text(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )
        except Exception as e:
            # Separate logger so a failing filter cannot recurse into itself
            logging.getLogger("logging_hygiene.error").error(f"Error in sensitive data filter: {e}")

        return True

    def sanitize_text(self, text: str) -> str:
        """
        Replace every sensitive pattern in ``text``.

        Args:
            text: Text to sanitize

        Returns:
            str: Sanitized text
        """
        if not text:
            return text

        sanitized = text
        for pattern_info in self.patterns:
            sanitized = pattern_info["pattern"].sub(pattern_info["replacement"], sanitized)
        return sanitized

    def add_pattern(self, pattern: Union[str, Pattern], replacement: str, description: str = "") -> None:
        """Add a custom sensitive data pattern."""
        if isinstance(pattern, str):
            pattern = re.compile(pattern, re.IGNORECASE)

        self.patterns.append({"pattern": pattern, "replacement": replacement, "description": description})
        self.logger.debug(f"Added custom pattern: {description}")


def setup_secure_logging(
    logger_name: Optional[str] = None,
    level: int = logging.INFO,
    custom_patterns: Optional[List[Dict[str, Union[str, Pattern]]]] = None,
) -> logging.Logger:
    """
    Set up logging with sensitive data filtering.

    Args:
        logger_name: Name of the logger to configure (None for root logger)
        level: Log level to apply
        custom_patterns: Additional custom patterns to filter

    Returns:
        logging.Logger: Configured logger
    """
    logger = logging.getLogger(logger_name) if logger_name else logging.getLogger()
    sensitive_filter = SensitiveDataFilter(custom_patterns)

    for handler in logger.handlers:
        if not any(isinstance(f, SensitiveDataFilter) for f in handler.filters):
            handler.addFilter(sensitive_filter)

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.addFilter(sensitive_filter)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)8s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(console_handler)

    logger.setLevel(level)
    logger.info("Secure logging with sensitive data filtering enabled")
    return logger


def sanitize_dict(data: Dict[str, Any], sensitive_keys: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Mask values of sensitive keys, recursing into nested dicts and lists.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Key fragments to mask (uses defaults if None)

    Returns:
        Dict[str, Any]: Sanitized copy
    """
    if sensitive_keys is None:
        sensitive_keys = [
            "secret",
            "token",
            "api_key",
            "apikey",
            "private_key",
            "signature",
            "authorization",
            "password",
            "webhook_url",
        ]

    sanitized: Dict[str, Any] = {}
    for key, value in data.items():
        key_lower = key.lower()
        if any(term in key_lower for term in sensitive_keys):
            sanitized[key] = "***REDACTED***"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, list):
            sanitized[key] = [
                sanitize_dict(item, sensitive_keys) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            sanitized[key] = value

    return sanitized


def create_audit_logger(name: str = "audit", log_file: Optional[str] = None) -> logging.Logger:
    """
    Create a dedicated audit logger for security events.

    Args:
        name: Name of the audit logger
        log_file: File to write to; falls back to ``AUDIT_LOG_FILE``, then stderr

    Returns:
        logging.Logger: Configured audit logger
    """
    audit_logger = logging.getLogger(name)
    log_file = log_file or os.getenv("AUDIT_LOG_FILE")

    handler: logging.Handler = logging.FileHandler(log_file) if log_file else logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s [AUDIT] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(SensitiveDataFilter())

    audit_logger.addHandler(handler)
    audit_logger.setLevel(logging.INFO)
    return audit_logger


def get_audit_logger() -> logging.Logger:
    """Return the process audit logger, creating it on first use."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = create_audit_logger()
    return _audit_logger


def log_security_event(
    event_type: str,
    identifier: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Write a security-related event to the audit log.

    Args:
        event_type: e.g. 'webhook_signature_rejected', 'rate_limit_exceeded'
        identifier: Client identifier associated with the event
        details: Additional details, sanitized before logging
    """
    event_data: Dict[str, Any] = {
        "event_type": event_type,
        "identifier": identifier or "unknown",
    }
    if details:
        event_data["details"] = sanitize_dict(details)

    get_audit_logger().info(f"Security Event: {event_data}")
