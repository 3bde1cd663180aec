"""
config.py — Embedded Node Configuration
=========================================
Environment-driven settings shared by the builder and its collaborators.
"""

import logging
import os
from typing import Optional


class Settings:
    """Embedded node tooling configuration from environment."""

    LOG_LEVEL: str = os.getenv("EMBEDDED_NODE_LOG_LEVEL", "INFO")
    TEMP_DIR_ROOT: Optional[str] = os.getenv("EMBEDDED_NODE_TEMP_ROOT") or None
    TEMP_DIR_PREFIX: str = os.getenv("EMBEDDED_NODE_TEMP_PREFIX", "embedded-node-")
    SSL_KEY_SIZE: int = int(os.getenv("EMBEDDED_NODE_SSL_KEY_SIZE", "2048"))
    SSL_VALIDITY_DAYS: int = int(os.getenv("EMBEDDED_NODE_SSL_VALIDITY_DAYS", "30"))
    SSL_PROTOCOL: str = os.getenv("EMBEDDED_NODE_SSL_PROTOCOL", "TLSv1.2")
    SSL_KEY_PASSWORD_BYTES: int = int(
        os.getenv("EMBEDDED_NODE_SSL_KEY_PASSWORD_BYTES", "16")
    )


settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Apply the shared log format at the configured level."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
