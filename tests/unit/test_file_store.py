"""Unit tests for the JSON-file blueprint store."""

import json

import pytest

from blueprint_chat.config.models import StoreConfig
from blueprint_chat.providers.factory import ProviderFactory
from blueprint_chat.providers.store.file_store import FileBlueprintStore
from blueprint_chat.services.exceptions import BlueprintNotFoundError, StoreError


@pytest.fixture
def store(tmp_path, blueprint):
    (tmp_path / "wrapped.json").write_text(
        json.dumps({"output": blueprint, "versionNumber": 3}), encoding="utf-8"
    )
    (tmp_path / "bare.json").write_text(json.dumps(blueprint), encoding="utf-8")
    return FileBlueprintStore(StoreConfig(directory=str(tmp_path)))


def test_factory_creates_file_store(tmp_path):
    store = ProviderFactory.create(
        "store", "file", config=StoreConfig(directory=str(tmp_path))
    )
    assert isinstance(store, FileBlueprintStore)
    assert ("store", "file") in ProviderFactory.available("store")


def test_factory_rejects_unknown_provider():
    with pytest.raises(ValueError, match="No provider registered"):
        ProviderFactory.create("store", "mongo", config=StoreConfig())


@pytest.mark.asyncio
@pytest.mark.parametrize("document_id", ["wrapped", "bare"])
async def test_fetch_blueprint_unwraps_output(store, document_id):
    blueprint = await store.fetch_blueprint(document_id)
    assert blueprint["competitorAnalysis"]["headline"] == "Outforecast the incumbents"


@pytest.mark.asyncio
@pytest.mark.parametrize("document_id", ["missing", "../etc/passwd", ""])
async def test_fetch_unknown_or_unsafe_id_returns_none(store, document_id):
    assert await store.fetch_blueprint(document_id) is None


@pytest.mark.asyncio
async def test_fetch_section(store):
    assert (await store.fetch_section("wrapped", "competitorAnalysis"))["headline"]
    assert await store.fetch_section("wrapped", "offerAnalysisViability") is None
    assert await store.fetch_section("missing", "competitorAnalysis") is None


@pytest.mark.asyncio
async def test_apply_edit_writes_new_version(store, tmp_path):
    applied = await store.apply_edit(
        "wrapped", "competitorAnalysis", "headline", "Grow Faster"
    )

    assert applied.version_number == 4
    assert applied.version_id
    record = json.loads((tmp_path / "wrapped.json").read_text(encoding="utf-8"))
    assert record["versionNumber"] == 4
    assert record["output"]["competitorAnalysis"]["headline"] == "Grow Faster"
    section = await store.fetch_section("wrapped", "competitorAnalysis")
    assert section["headline"] == "Grow Faster"


@pytest.mark.asyncio
async def test_apply_edit_to_bare_file_starts_versioning(store):
    applied = await store.apply_edit(
        "bare", "industryMarketOverview", "painPoints.primary[0]", "Churn"
    )

    assert applied.version_number == 2
    section = await store.fetch_section("bare", "industryMarketOverview")
    assert section["painPoints"]["primary"][0] == "Churn"


@pytest.mark.asyncio
async def test_apply_edit_unknown_blueprint(store):
    with pytest.raises(BlueprintNotFoundError):
        await store.apply_edit("missing", "competitorAnalysis", "headline", "x")


@pytest.mark.asyncio
async def test_apply_edit_missing_section(store):
    with pytest.raises(StoreError):
        await store.apply_edit("wrapped", "offerAnalysisViability", "offerStrength", 9)


@pytest.mark.asyncio
async def test_apply_edit_bad_index(store):
    with pytest.raises(StoreError):
        await store.apply_edit("wrapped", "competitorAnalysis", "competitors.5.name", "x")
