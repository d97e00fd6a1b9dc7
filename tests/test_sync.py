"""Reconciliation engine tests against the in-memory record store."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from repos import sync
from repos.provider import FetchOptions
from repos.records import PersistenceError, RemoteItem, SyncOptions


def _item(remote_id: str, title: str, **fields) -> RemoteItem:
    return RemoteItem(remote_id=remote_id, title=title, **fields)


class FakeProvider:
    name = "github"

    def __init__(self, items: list[RemoteItem]) -> None:
        self.items = items
        self.fetch_options: FetchOptions | None = None

    async def fetch_all(self, options: FetchOptions | None = None) -> list[RemoteItem]:
        self.fetch_options = options
        return list(self.items)

    async def fetch_one(self, item_name: str) -> RemoteItem:
        for item in self.items:
            if item.title == item_name:
                return item
        raise LookupError(item_name)

    async def rate_limit(self):
        raise NotImplementedError


class TestCreate:
    @pytest.mark.asyncio
    async def test_first_sight_creates_record_with_defaults(self, store):
        started = datetime.now(timezone.utc)

        result = await sync.sync("github", [_item("1", "Nutrito", stars=3)], store=store)

        assert (result.created, result.updated, result.deleted) == (1, 0, 0)
        row = store.get("github", "1")
        assert row["title"] == "Nutrito"
        assert row["stars"] == 3
        assert row["forks"] == 0
        assert row["is_fork"] is False
        assert row["topics"] == []
        assert row["is_featured"] is False
        assert row["is_published"] is False
        assert row["fetched_at"] >= started

    @pytest.mark.asyncio
    async def test_create_ignores_curated_values_on_item(self, store):
        await sync.sync(
            "github",
            [_item("1", "Nutrito", is_published=True, portfolio_title="Shown")],
            store=store,
        )

        row = store.get("github", "1")
        assert row["is_published"] is False
        assert row["portfolio_title"] is None

    @pytest.mark.asyncio
    async def test_requires_provider_name(self, store):
        with pytest.raises(ValueError):
            await sync.sync("  ", [_item("1", "x")], store=store)


class TestIdempotence:
    @pytest.mark.asyncio
    async def test_second_run_only_updates(self, store):
        items = [_item("1", "Nutrito", stars=10), _item("2", "MealBook", stars=2)]

        first = await sync.sync("github", items, store=store)
        snapshot = {k: {f: v for f, v in r.items() if f != "fetched_at"} for k, r in store.rows.items()}
        second = await sync.sync("github", items, store=store)

        assert first.created == 2
        assert (second.created, second.updated, second.deleted) == (0, 2, 0)
        assert len(store.rows) == 2
        after = {k: {f: v for f, v in r.items() if f != "fetched_at"} for k, r in store.rows.items()}
        assert after == snapshot


class TestPreservation:
    @pytest.mark.asyncio
    async def test_curated_fields_survive_update(self, store):
        store.seed(
            "github",
            "1",
            title="Old",
            stars=1,
            is_featured=True,
            display_order=4,
            tech_stack=["Flutter"],
            portfolio_title="My app",
        )

        await sync.sync(
            "github",
            [_item("1", "Nutrito", stars=42, portfolio_title="From remote")],
            SyncOptions(preserve_custom_fields=True),
            store=store,
        )

        row = store.get("github", "1")
        assert row["title"] == "Nutrito"
        assert row["stars"] == 42
        assert row["is_featured"] is True
        assert row["display_order"] == 4
        assert row["tech_stack"] == ["Flutter"]
        assert row["portfolio_title"] == "My app"

    @pytest.mark.asyncio
    async def test_absent_fields_are_left_untouched(self, store):
        store.seed("github", "1", title="Nutrito", description="keep me", language="Dart")

        await sync.sync("github", [_item("1", "Nutrito", stars=5)], store=store)

        row = store.get("github", "1")
        assert row["description"] == "keep me"
        assert row["language"] == "Dart"

    @pytest.mark.asyncio
    async def test_overwrite_when_preservation_disabled(self, store):
        store.seed("github", "1", title="Old", is_published=False, portfolio_title="Mine", is_featured=True)

        await sync.sync(
            "github",
            [_item("1", "Nutrito", is_published=True, portfolio_title="Theirs")],
            SyncOptions(preserve_custom_fields=False),
            store=store,
        )

        row = store.get("github", "1")
        assert row["is_published"] is True
        assert row["portfolio_title"] == "Theirs"
        # Curated fields the item does not carry are not reset.
        assert row["is_featured"] is True


class TestUpdateExisting:
    @pytest.mark.asyncio
    async def test_existing_records_are_kept_as_is(self, store):
        store.seed("github", "1", title="Old", stars=1)

        result = await sync.sync(
            "github",
            [_item("1", "New", stars=99), _item("2", "Fresh")],
            SyncOptions(update_existing=False),
            store=store,
        )

        assert (result.created, result.updated) == (1, 0)
        assert store.get("github", "1")["title"] == "Old"
        assert result.total == 2
        assert ("update", "github", "1") not in store.writes


class TestDeletion:
    @pytest.mark.asyncio
    async def test_missing_records_kept_by_default(self, store):
        store.seed("github", "1", title="Nutrito")
        store.seed("github", "2", title="MealBook")

        result = await sync.sync("github", [_item("1", "Nutrito")], store=store)

        assert result.deleted == 0
        assert store.get("github", "2") is not None

    @pytest.mark.asyncio
    async def test_missing_records_deleted_when_enabled(self, store):
        store.seed("github", "1", title="Nutrito")
        store.seed("github", "2", title="MealBook")

        result = await sync.sync(
            "github",
            [_item("1", "Nutrito")],
            SyncOptions(delete_removed=True),
            store=store,
        )

        assert result.deleted == 1
        assert store.get("github", "2") is None
        assert store.get("github", "1") is not None

    @pytest.mark.asyncio
    async def test_empty_fetch_with_delete_clears_provider(self, store):
        store.seed("github", "1", title="Nutrito")

        result = await sync.sync("github", [], SyncOptions(delete_removed=True), store=store)

        assert result.deleted == 1
        assert result.total == 0


class TestProviderIsolation:
    @pytest.mark.asyncio
    async def test_same_remote_id_under_other_provider_is_untouched(self, store):
        store.seed("gitlab", "1", title="Elsewhere", stars=7, is_featured=True)

        result = await sync.sync(
            "github",
            [_item("1", "Nutrito", stars=1)],
            SyncOptions(delete_removed=True),
            store=store,
        )

        assert result.created == 1
        assert store.get("gitlab", "1")["title"] == "Elsewhere"
        assert store.get("gitlab", "1")["stars"] == 7
        assert store.get("github", "1")["title"] == "Nutrito"


class TestScenario:
    @pytest.mark.asyncio
    async def test_two_repositories_over_two_runs(self, store):
        first = await sync.sync(
            "github",
            [_item("101", "Nutrito", stars=5), _item("202", "MealBook", stars=1)],
            store=store,
        )
        assert (first.created, first.updated) == (2, 0)

        # Admin curates Nutrito between runs.
        store.get("github", "101").update(is_featured=True, display_order=1, portfolio_title="Nutrito App")

        second = await sync.sync(
            "github",
            [_item("101", "Nutrito", stars=8)],
            SyncOptions(delete_removed=True),
            store=store,
        )

        assert (second.created, second.updated, second.deleted) == (0, 1, 1)
        nutrito = store.get("github", "101")
        assert nutrito["stars"] == 8
        assert nutrito["is_featured"] is True
        assert nutrito["portfolio_title"] == "Nutrito App"
        assert store.get("github", "202") is None


class TestDuplicatesAndFailures:
    @pytest.mark.asyncio
    async def test_repeated_item_yields_one_record(self, store):
        result = await sync.sync(
            "github",
            [_item("1", "Nutrito", stars=1), _item("1", "Nutrito", stars=2)],
            store=store,
        )

        assert result.created == 1
        assert result.updated == 1
        assert result.total == 1
        assert store.get("github", "1")["stars"] == 2

    @pytest.mark.asyncio
    async def test_store_failure_aborts_and_keeps_earlier_writes(self, store):
        store.fail_on_write = "2"

        with pytest.raises(PersistenceError):
            await sync.sync(
                "github",
                [_item("1", "a"), _item("2", "b"), _item("3", "c")],
                store=store,
            )

        assert store.get("github", "1") is not None
        assert store.get("github", "3") is None


class TestPayloads:
    def test_update_payload_strips_curated_fields_when_preserving(self):
        now = datetime.now(timezone.utc)
        item = _item("1", "Nutrito", stars=3, is_published=True, raw={"id": 1})

        payload = sync.build_update_payload(item, preserve_custom_fields=True, now=now)

        assert payload["title"] == "Nutrito"
        assert payload["raw"] == {"id": 1}
        assert payload["fetched_at"] == now
        assert "is_published" not in payload

    def test_new_record_defaults(self):
        now = datetime.now(timezone.utc)

        values = sync.build_new_record(_item("1", "Nutrito", forks=2), now=now)

        assert values["forks"] == 2
        assert values["stars"] == 0
        assert values["has_wiki"] is False
        assert "raw" not in values
        assert sync.build_new_record(_item("2", "MealBook", raw={"id": 2}), now=now)["raw"] == {"id": 2}


class TestProviderEntryPoints:
    @pytest.mark.asyncio
    async def test_sync_provider_passes_fetch_options(self, store):
        provider = FakeProvider([_item("1", "Nutrito")])
        options = FetchOptions(include_forks=False)

        result = await sync.sync_provider(provider, fetch_options=options, store=store)

        assert provider.fetch_options == options
        assert result.created == 1

    @pytest.mark.asyncio
    async def test_sync_single_never_deletes(self, store):
        store.seed("github", "2", title="MealBook")
        provider = FakeProvider([_item("1", "Nutrito")])

        result = await sync.sync_single(
            provider,
            "Nutrito",
            options=SyncOptions(delete_removed=True),
            store=store,
        )

        assert result.created == 1
        assert result.deleted == 0
        assert store.get("github", "2") is not None
