"""Environment-driven defaults for the mini-ca command."""
from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def _env(name: str, default: str):
    # read at construction time, not at import
    return field(default_factory=lambda: os.getenv(name, default))


@dataclass
class CAConfig:
    out_dir: str = _env("MINICA_OUT_DIR", ".")
    in_dir: str = _env("MINICA_IN_DIR", ".")
    date_format: str = _env("MINICA_DATE_FORMAT", DEFAULT_DATE_FORMAT)
    log_level: str = _env("MINICA_LOG_LEVEL", "WARNING")
