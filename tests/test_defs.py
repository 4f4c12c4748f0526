import asyncio
from typing import ClassVar

import pytest
from pydantic import BaseModel

from bungie_api.defs import DefinitionCache
from bungie_api.errors import DefinitionNotFoundError, ManifestError, UnknownTableError
from bungie_api.values import HashRef

from conftest import FakeContentSource, manifest

TABLE = "DestinyInventoryItemDefinition"
OTHER = "DestinyStatDefinition"


class ItemDefinition(BaseModel):
    __definition_table__: ClassVar[str] = TABLE

    name: str


def _source(delay: float = 0) -> FakeContentSource:
    return FakeContentSource(
        manifest("v1", {TABLE: "/common/items-v1.json", OTHER: "/common/stats-v1.json"}),
        {
            "/common/items-v1.json": {5: {"name": "Foo"}},
            "/common/items-v2.json": {5: {"name": "Bar"}, 6: {"name": "Baz"}},
            "/common/stats-v1.json": {9: {"name": "Mobility"}},
        },
        delay=delay,
    )


def _advance(source: FakeContentSource) -> None:
    source.manifest = manifest("v2", {TABLE: "/common/items-v2.json"})


@pytest.mark.asyncio
async def test_resolve_follows_manifest_version():
    source = _source()
    cache = DefinitionCache(source)

    assert await cache.resolve(TABLE, 5) == {"name": "Foo"}
    assert cache.manifest_version == "v1"

    _advance(source)
    await cache.check_updates()

    assert await cache.resolve(TABLE, 5) == {"name": "Bar"}
    assert cache.manifest_version == "v2"
    assert source.table_fetches == ["/common/items-v1.json", "/common/items-v2.json"]


@pytest.mark.asyncio
async def test_loaded_table_is_reused_within_a_version():
    source = _source()
    cache = DefinitionCache(source)

    await cache.resolve(TABLE, 5)
    await cache.resolve(TABLE, 5)

    assert source.manifest_fetches == 1
    assert source.table_fetches == ["/common/items-v1.json"]


@pytest.mark.asyncio
async def test_concurrent_resolves_fetch_once():
    source = _source(delay=0.01)
    cache = DefinitionCache(source)

    results = await asyncio.gather(*(cache.resolve(TABLE, 5) for _ in range(20)))

    assert all(result == {"name": "Foo"} for result in results)
    assert source.manifest_fetches == 1
    assert source.table_fetches == ["/common/items-v1.json"]


@pytest.mark.asyncio
async def test_miss_refreshes_before_failing():
    source = _source()
    cache = DefinitionCache(source)

    with pytest.raises(DefinitionNotFoundError) as excinfo:
        await cache.resolve(TABLE, 404)

    assert (excinfo.value.table, excinfo.value.hash_identifier) == (TABLE, 404)
    assert source.manifest_fetches == 2


@pytest.mark.asyncio
async def test_miss_picks_up_a_newer_version():
    source = _source()
    cache = DefinitionCache(source)
    await cache.resolve(TABLE, 5)

    _advance(source)

    assert await cache.resolve(TABLE, 6) == {"name": "Baz"}
    assert cache.manifest_version == "v2"


@pytest.mark.asyncio
async def test_empty_manifest_version_is_an_error():
    source = FakeContentSource(manifest("", {}), {})
    cache = DefinitionCache(source)

    with pytest.raises(ManifestError):
        await cache.resolve(TABLE, 5)


@pytest.mark.asyncio
async def test_unknown_table():
    cache = DefinitionCache(_source())

    with pytest.raises(UnknownTableError) as excinfo:
        await cache.resolve("DestinyNoSuchDefinition", 1)
    assert excinfo.value.table == "DestinyNoSuchDefinition"


@pytest.mark.asyncio
async def test_locale_selects_content_paths():
    source = FakeContentSource(
        manifest("v1", {TABLE: "/common/items-fr.json"}, locale="fr"),
        {"/common/items-fr.json": {5: {"name": "Fou"}}},
    )
    cache = DefinitionCache(source, locale="fr")

    assert await cache.resolve(TABLE, 5) == {"name": "Fou"}


@pytest.mark.asyncio
async def test_typed_lookups():
    cache = DefinitionCache(_source())

    assert await cache.get_def(TABLE, 5, ItemDefinition) == ItemDefinition(name="Foo")
    assert await HashRef(5, ItemDefinition).resolve(cache) == ItemDefinition(name="Foo")


@pytest.mark.asyncio
async def test_concurrent_manifest_loads_share_one_fetch():
    source = _source(delay=0.01)
    cache = DefinitionCache(source)

    manifests = await asyncio.gather(*(cache.ensure_manifest() for _ in range(10)))

    assert {m.version for m in manifests} == {"v1"}
    assert source.manifest_fetches == 1


@pytest.mark.asyncio
async def test_concurrent_resolves_after_a_version_change_fetch_once():
    source = _source(delay=0.01)
    cache = DefinitionCache(source)
    await cache.resolve(TABLE, 5)

    _advance(source)
    await cache.check_updates()
    results = await asyncio.gather(*(cache.resolve(TABLE, 5) for _ in range(20)))

    assert all(result == {"name": "Bar"} for result in results)
    assert source.table_fetches == ["/common/items-v1.json", "/common/items-v2.json"]


@pytest.mark.asyncio
async def test_tables_load_independently():
    source = _source(delay=0.01)
    cache = DefinitionCache(source)

    item, stat = await asyncio.gather(cache.resolve(TABLE, 5), cache.resolve(OTHER, 9))

    assert item == {"name": "Foo"}
    assert stat == {"name": "Mobility"}
    assert sorted(source.table_fetches) == ["/common/items-v1.json", "/common/stats-v1.json"]


@pytest.mark.asyncio
async def test_table_without_a_loaded_manifest_is_an_error(monkeypatch):
    cache = DefinitionCache(_source())

    async def skip_manifest():
        return None

    monkeypatch.setattr(cache, "ensure_manifest", skip_manifest)

    with pytest.raises(ManifestError):
        await cache.ensure_table(TABLE)
