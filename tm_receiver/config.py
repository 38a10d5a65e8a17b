"""
Configuration schema for the telemetry receiver.

Keep this lean: the device to read, where live and archived artifacts go,
the framing markers the sender uses, and logging knobs. Every field can
be overridden from the environment via `ReceiverConfig.from_env()`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

_ENV_PREFIX = "TM_"


class ReceiverConfig(BaseModel):
    """
    Centralized, validated configuration for one receive session.
    Paths are resolved relative to the process working directory.
    """

    # === Link ===
    device: str = Field(
        default="/dev/ttyUSB0",
        description="Character device of the synchronous serial adapter.",
    )
    max_frame_size: int = Field(
        default=4194300,
        ge=64,
        description="Upper bound for one received frame (read buffer size).",
    )

    # === Framing markers ===
    image_terminator_len: int = Field(
        default=16,
        ge=1,
        description="Frames of exactly this length end an image; payload carries its filename.",
    )
    catalog_terminator_len: int = Field(
        default=14,
        ge=1,
        description="Frames of exactly this length close the XML catalog.",
    )
    catalog_prefix: bytes = Field(
        default=b"<ROEIMAGE>",
        min_length=1,
        description="Content prefix that marks a catalog fragment when the stream is ambiguous.",
    )

    # === Filesystem layout ===
    archive_dir: Path = Field(
        default=Path("images"),
        description="Archived images land here; catalogs under <archive_dir>/xml_archive.",
    )
    image_staging_path: Path = Field(
        default=Path("image.staging"),
        description="Fixed path of the in-progress image.",
    )
    catalog_path: Path = Field(
        default=Path("imageindex.xml"),
        description="Fixed path of the live, always-well-formed XML catalog.",
    )
    catalog_archive_subdir: str = Field(
        default="xml_archive",
        description="Subdirectory of archive_dir for archived catalogs.",
    )

    # === Behavior ===
    recovery_mode: bool = Field(
        default=True,
        description="Start committed to the image stream and fall back to it after each catalog.",
    )
    viewer_command: Optional[str] = Field(
        default=None,
        description="Command spawned for each archived image; '{path}' is replaced by its path.",
    )

    # === Logging ===
    log_level: str = Field(default="INFO", description="Root level for the 'tm_receiver' logger.")
    log_file: Optional[Path] = Field(
        default=Path("logs/receiver.log"),
        description="Rotating log file; None or an empty value logs to the console only.",
    )

    class Config:
        frozen = True  # one instance is shared by every component of the session

    @field_validator("log_file", mode="before")
    @classmethod
    def _blank_log_file_is_console_only(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # --- derived paths ---

    @property
    def catalog_archive_dir(self) -> Path:
        return self.archive_dir / self.catalog_archive_subdir

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ReceiverConfig":
        """
        Build a config from TM_* environment variables, then apply overrides.

        Example: TM_ARCHIVE_DIR=/data/images TM_RECOVERY_MODE=0
        """
        env = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = env.get(_ENV_PREFIX + name.upper())
            if raw is None:
                continue
            if name == "catalog_prefix":
                values[name] = raw.encode("ascii")
            elif name == "recovery_mode":
                values[name] = raw.strip().lower() not in ("0", "false", "no", "off", "")
            else:
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
