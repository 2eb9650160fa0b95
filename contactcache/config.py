"""Configuration loading from environment variables and defaults."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


def _path_env(key: str) -> Path | None:
    value = _env(key).strip()
    return Path(value).expanduser() if value else None


# Address book: a .vcf file or a directory of them
VCARD_PATH = _path_env("CONTACTCACHE_VCARD_PATH")
VCARD_RECURSIVE = _env("CONTACTCACHE_VCARD_RECURSIVE", "false").lower() in ("true", "1", "yes")

# Accounts JSON (see accounts.JsonAccountDirectory)
ACCOUNTS_PATH = _path_env("CONTACTCACHE_ACCOUNTS_PATH")

# Logging
_level_name = _env("CONTACTCACHE_LOG_LEVEL", "INFO").upper()
if isinstance(logging.getLevelName(_level_name), int):
    LOG_LEVEL = _level_name
else:
    logging.getLogger(__name__).warning(
        "Invalid CONTACTCACHE_LOG_LEVEL %r, falling back to INFO", _level_name,
    )
    LOG_LEVEL = "INFO"
