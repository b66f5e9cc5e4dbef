"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields, so the
service starts with a file-backed store in the working directory when
nothing is configured.  Tests build their own ``Settings`` instances
instead of relying on the module level ``settings`` object.
"""

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Library Records API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = _env_flag("DEBUG", "false")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")

    # Path of the file holding the whole store.  The special value
    # ``:memory:`` keeps everything in process memory; nothing survives
    # a restart in that mode.
    storage_path: str = os.getenv("STORAGE_PATH", "library_records.mem")

    # Pages (64 KiB each) handed to a region at a time.  Only used when a
    # new store is formatted; an existing store keeps its own value.
    storage_bucket_size: int = int(os.getenv("STORAGE_BUCKET_SIZE", "16"))

    # Upper bound on the size of the backing memory in pages.  ``0``
    # disables the limit.
    storage_max_pages: int = int(os.getenv("STORAGE_MAX_PAGES", "0"))

    # Flush every write to disk.  Turning this off is only safe for
    # throwaway stores.
    storage_fsync: bool = _env_flag("STORAGE_FSYNC", "true")

    # Listing an empty collection answers with NotFound by default.  Set
    # EMPTY_LIST_IS_ERROR=false to return an empty list instead.
    empty_list_is_error: bool = _env_flag("EMPTY_LIST_IS_ERROR", "true")

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables must
# be set before this module is imported.
settings = Settings()
