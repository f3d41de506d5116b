"""Unit tests for LocalScriptStore."""

import pytest

from indexer_service.domain.shared.error import NotFoundError, ValidationError
from indexer_service.infrastructure.persistence.adapter.script_store import LocalScriptStore


@pytest.mark.asyncio
async def test_put_then_get_returns_content(script_store):
    await script_store.put("scripts/a.js", b"console.log('a')")

    assert await script_store.get("scripts/a.js") == b"console.log('a')"


@pytest.mark.asyncio
async def test_put_overwrites_existing_script(script_store):
    await script_store.put("scripts/a.js", b"old")
    await script_store.put("scripts/a.js", b"new")

    assert await script_store.get("scripts/a.js") == b"new"
    # No temporary files left next to the script
    assert [p.name for p in (script_store.base_path / "scripts").iterdir()] == ["a.js"]


@pytest.mark.asyncio
async def test_get_missing_script_is_not_found(script_store):
    with pytest.raises(NotFoundError):
        await script_store.get("scripts/missing.js")


@pytest.mark.asyncio
async def test_locate_returns_path_inside_store(script_store):
    await script_store.put("scripts/b.js", b"b")

    path = script_store.locate("scripts/b.js")

    assert path.read_bytes() == b"b"
    assert path.is_relative_to(script_store.base_path)


def test_locate_missing_script_is_not_found(script_store):
    with pytest.raises(NotFoundError):
        script_store.locate("scripts/none.js")


@pytest.mark.asyncio
@pytest.mark.parametrize("key", ["", "/etc/passwd", "../outside.js", "scripts/../../x.js"])
async def test_keys_escaping_the_store_are_rejected(script_store, key):
    with pytest.raises(ValidationError):
        await script_store.put(key, b"x")


def test_store_creates_base_directory(tmp_path):
    LocalScriptStore(tmp_path / "nested" / "data")

    assert (tmp_path / "nested" / "data").is_dir()
