"""
Configuration objects for the archive viewer (Flask).

Override via environment variables.
"""

from __future__ import annotations
import os


class Config:
    """Base configuration (safe defaults)."""

    # Storage: must match the receiver's archive location
    ARCHIVE_DIR = os.getenv("TM_ARCHIVE_DIR", "images")
    CATALOG_ARCHIVE_SUBDIR = os.getenv("TM_CATALOG_ARCHIVE_SUBDIR", "xml_archive")

    # Listing
    MAX_LISTING = int(os.getenv("TM_VIEWER_MAX_LISTING", "500"))

    # Logging
    LOG_LEVEL = os.getenv("TM_VIEWER_LOG_LEVEL", "INFO")


class ProductionConfig(Config):
    """Production overrides."""
    LOG_LEVEL = os.getenv("TM_VIEWER_LOG_LEVEL", "INFO")


class DevelopmentConfig(Config):
    """Development overrides."""
    LOG_LEVEL = os.getenv("TM_VIEWER_LOG_LEVEL", "DEBUG")
