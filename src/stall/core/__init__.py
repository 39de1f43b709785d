"""Core module - Shared options, errors and enums."""

from stall.core.config import DEFAULT_STALL_FILE, RunOptions
from stall.core.types import (
    BothMissingError,
    ConfigError,
    Direction,
    DuplicateNameError,
    FileAccessError,
    InvalidNameError,
    NothingToCopyError,
    NotFoundError,
    ParseError,
    Side,
    StallError,
    StallRecord,
    normalize_local_name,
)

__all__ = [
    # Config
    "DEFAULT_STALL_FILE",
    "RunOptions",
    # Types
    "Direction",
    "Side",
    "StallRecord",
    "normalize_local_name",
    # Errors
    "BothMissingError",
    "ConfigError",
    "DuplicateNameError",
    "FileAccessError",
    "InvalidNameError",
    "NothingToCopyError",
    "NotFoundError",
    "ParseError",
    "StallError",
]
