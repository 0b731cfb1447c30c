# tests/test_credentials.py

from __future__ import annotations

from pathlib import Path

import pytest

from gobii_tasks.credentials import ApiKeyStore


def test_key_file_set_get_clear(tmp_path: Path) -> None:
    store = ApiKeyStore(tmp_path / "nested" / "api_key")
    assert store.get() is None

    store.set("  abc123 \n")
    assert store.get() == "abc123"
    assert (tmp_path / "nested" / "api_key").read_text("utf-8") == "abc123"

    store.clear()
    store.clear()
    assert store.get() is None


def test_env_key_takes_precedence(tmp_path: Path) -> None:
    path = tmp_path / "api_key"
    path.write_text("from-file", "utf-8")

    assert ApiKeyStore(path, env_key="from-env").get() == "from-env"
    assert ApiKeyStore(path, env_key="   ").get() == "from-file"


def test_blank_keys_count_as_missing(tmp_path: Path) -> None:
    path = tmp_path / "api_key"
    path.write_text("   ", "utf-8")
    store = ApiKeyStore(path)

    assert store.get() is None
    with pytest.raises(ValueError):
        store.set("")
