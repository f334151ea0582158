"""
Logging setup for the order core: one daily-rotated file plus the console,
both passed through SecretMaskingFilter so customer data and payment
credentials never reach the logs.
"""

import logging
import logging.handlers
import re
from pathlib import Path

import config

LOG_FORMAT = '%(asctime)s | %(name)-25s | %(levelname)-8s | %(message)s'


class SecretMaskingFilter(logging.Filter):
    """Replaces card numbers, contact data and payment credentials with [REDACTED_*] markers."""

    PATTERNS = [
        # Gateway credentials (Mercado Pago style access tokens, Authorization headers)
        (re.compile(r'(Bearer\s+)([A-Za-z0-9_\-\.]+)', re.IGNORECASE), r'\1[REDACTED_BEARER_TOKEN]'),
        (re.compile(r'\b(?:APP_USR|TEST)-[A-Za-z0-9\-]{16,}'), '[REDACTED_ACCESS_TOKEN]'),
        # Credentials inside a database url
        (re.compile(r'(://[^:/@\s]+:)([^@\s]+)(@)'), r'\1[REDACTED_PASSWORD]\3'),
        # 13-19 digits, optionally grouped by spaces or dashes
        (re.compile(r'\b(?:\d[ -]?){12,18}\d\b'), '[REDACTED_CARD]'),
        (re.compile(r'\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b'), '[REDACTED_EMAIL]'),
        (re.compile(r'\b(\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b'), '[REDACTED_PHONE]'),
    ]

    @classmethod
    def mask(cls, text: str) -> str:
        for pattern, replacement in cls.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = self.mask(str(record.msg))
        if record.args:
            record.args = tuple(self.mask(arg) if isinstance(arg, str) else arg for arg in record.args)
        return True


def setup_logging(log_dir: str | Path | None = None, filename: str = "shop.log"):
    """
    Configure the root logger once at startup (run.py).

    Level from config.LOG_LEVEL, files kept for config.LOG_RETENTION_DAYS,
    masking unless config.LOG_MASK_SECRETS is off.
    """
    log_dir = Path(log_dir or config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    handlers = [
        logging.handlers.TimedRotatingFileHandler(log_dir / filename, when="midnight",
                                                  backupCount=config.LOG_RETENTION_DAYS, encoding="utf-8"),
        logging.StreamHandler(),
    ]
    masking = SecretMaskingFilter() if config.LOG_MASK_SECRETS else None

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        if masking is not None:
            handler.addFilter(masking)
        root_logger.addHandler(handler)

    # SQLAlchemy echoes through its own logger when DB_ECHO is set
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if config.DB_ECHO else logging.WARNING)

    logging.info(f"Logging initialized: level={config.LOG_LEVEL}, retention={config.LOG_RETENTION_DAYS} days, "
                 f"masking={'on' if masking else 'off'}")
