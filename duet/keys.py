"""API key and state-location settings for duet.

Provider keys are resolved in this order:
  1. Variables already set in the shell
  2. ~/.duet/keys.env
  3. .env in the current directory
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

DUET_HOME = Path.home() / ".duet"
KEYS_FILE = DUET_HOME / "keys.env"

# Overrides the default state location (directory or .db file)
STATE_ENV = "DUET_STATE"


def load_keys_env() -> None:
    """Populate os.environ from the key files without overwriting anything."""
    for env_file in (KEYS_FILE, Path.cwd() / ".env"):
        if env_file.is_file():
            _load_env_file(env_file)


def _load_env_file(path: Path) -> None:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.debug("Could not read %s: %s", path, e)
        return

    for raw in lines:
        line = raw.strip()
        if line.startswith("export "):
            line = line[len("export "):]
        name, sep, value = line.partition("=")
        name = name.strip()
        if not sep or not name or name.startswith("#"):
            continue
        if os.environ.get(name):
            continue
        os.environ[name] = value.strip().strip("'\"")
        logger.debug("Loaded %s from %s", name, path)


def missing_keys(env_vars: Iterable[str]) -> list[str]:
    """The variables in ``env_vars`` that are unset or empty, deduplicated."""
    return sorted({name for name in env_vars if not os.environ.get(name)})


def default_state_path() -> Path:
    """``$DUET_STATE`` if set, else ``~/.duet/state``."""
    override = os.environ.get(STATE_ENV)
    if override:
        return Path(override).expanduser()
    return DUET_HOME / "state"
