# src/gobii_tasks/credentials.py

from __future__ import annotations

import contextlib
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class ApiKeyStore:
    """
    Where the Gobii API key lives.

    Lookup order:
    - env_key (GOBII_API_KEY from settings), if non-empty
    - the key file written by set()

    Empty/whitespace keys count as "not configured".
    """

    def __init__(self, path: str | Path, env_key: str | None = None) -> None:
        self._path = Path(path)
        self._env_key = (env_key or "").strip() or None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def from_env(self) -> bool:
        return self._env_key is not None

    def get(self) -> str | None:
        if self._env_key:
            return self._env_key
        try:
            key = self._path.read_text("utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError:
            logger.exception("Failed to read API key file %s", self._path)
            return None
        return key or None

    def set(self, key: str) -> None:
        key = (key or "").strip()
        if not key:
            raise ValueError("API key must not be empty")

        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(key, "utf-8")
        with contextlib.suppress(OSError):
            # Best-effort: the key is a secret, keep the file private on disk.
            os.chmod(tmp, 0o600)
        os.replace(tmp, self._path)
        logger.info("API key saved to %s", self._path)

    def clear(self) -> None:
        with contextlib.suppress(FileNotFoundError):
            self._path.unlink()
        logger.info("API key file removed %s", self._path)


class StaticApiKey:
    """In-memory credential (offline mode, tests)."""

    def __init__(self, key: str | None) -> None:
        self._key = key

    def get(self) -> str | None:
        return self._key
