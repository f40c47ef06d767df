"""
Minimal .env loader.

Reads ``KEY=VALUE`` lines from a .env file in the current working directory
into ``os.environ``. Comments, blank lines and lines without ``=`` are
skipped; values are kept verbatim (quotes included) and override existing
variables.
"""
import os
from pathlib import Path


def load_env(env_file: str = ".env") -> None:
    """Load environment variables from ``env_file`` if it exists."""
    env_path = Path(env_file)
    if not env_path.is_file():
        return

    with open(env_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            os.environ[key.strip()] = value.strip()
