"""
Repository reconciliation.

Flow:
1) Load the provider's existing records, keyed by remote id
2) For each fetched item: update the matching record or create a new one
3) Optionally delete records whose remote id disappeared
4) Return counts + the resulting records

Matching is by (provider, remote_id) only. Curated fields are stripped from
update payloads unless the caller opts out of preservation.

Items are processed one by one; the first store failure aborts the sync and
earlier writes stay committed.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from datetime import datetime, timezone
from typing import Any, Protocol

from . import repository
from .provider import FetchOptions, SourceProvider
from .records import (
    COUNT_FIELDS,
    CURATED_FIELDS,
    FLAG_FIELDS,
    RemoteItem,
    SyncOptions,
    SyncResult,
)

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    async def list_for_provider(self, provider: str) -> list[dict[str, Any]]: ...

    async def insert(self, provider: str, remote_id: str, values: dict[str, Any]) -> dict[str, Any]: ...

    async def update(self, provider: str, remote_id: str, values: dict[str, Any]) -> dict[str, Any]: ...

    async def delete_many(self, provider: str, remote_ids: Collection[str]) -> int: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_update_payload(item: RemoteItem, *, preserve_custom_fields: bool, now: datetime) -> dict[str, Any]:
    """
    Fields to write onto an existing record.

    Only fields the item provides are included; absent ones are left as they are.
    """
    payload = item.synced_values()
    payload.update(item.curated_values())
    if item.raw is not None:
        payload["raw"] = item.raw
    payload["fetched_at"] = now

    if preserve_custom_fields:
        payload = {k: v for k, v in payload.items() if k not in CURATED_FIELDS}
    return payload


def build_new_record(item: RemoteItem, *, now: datetime) -> dict[str, Any]:
    """
    Fields for a first-seen item. Curated fields are left to the store defaults.
    """
    values = item.synced_values()
    for name in COUNT_FIELDS:
        values.setdefault(name, 0)
    for name in FLAG_FIELDS:
        values.setdefault(name, False)
    values.setdefault("topics", [])
    if item.raw is not None:
        values["raw"] = item.raw
    values["fetched_at"] = now
    return values


async def sync(
    provider_name: str,
    fetched_items: Sequence[RemoteItem],
    options: SyncOptions | None = None,
    *,
    store: RecordStore = repository,
) -> SyncResult:
    options = options or SyncOptions()
    provider_name = (provider_name or "").strip()
    if not provider_name:
        raise ValueError("Provider name is required.")

    logger.info(
        "sync_start provider=%s items=%s preserve=%s update=%s delete=%s",
        provider_name,
        len(fetched_items),
        options.preserve_custom_fields,
        options.update_existing,
        options.delete_removed,
    )

    result = SyncResult()
    try:
        existing = {str(r["remote_id"]): r for r in await store.list_for_provider(provider_name)}
        existing_ids = set(existing)
        fetched_ids = {item.remote_id for item in fetched_items}

        # Keyed by remote id so a repeated item yields one record in the result.
        touched: dict[str, dict[str, Any]] = {}
        for item in fetched_items:
            current = existing.get(item.remote_id)
            now = _utc_now()

            if current is not None:
                if not options.update_existing:
                    touched[item.remote_id] = current
                    continue
                payload = build_update_payload(
                    item,
                    preserve_custom_fields=options.preserve_custom_fields,
                    now=now,
                )
                row = await store.update(provider_name, item.remote_id, payload)
                result.updated += 1
            else:
                row = await store.insert(provider_name, item.remote_id, build_new_record(item, now=now))
                result.created += 1

            existing[item.remote_id] = row
            touched[item.remote_id] = row

        if options.delete_removed:
            removed = existing_ids - fetched_ids
            if removed:
                result.deleted = await store.delete_many(provider_name, removed)
    except Exception:
        logger.exception(
            "sync_failed provider=%s created=%s updated=%s",
            provider_name,
            result.created,
            result.updated,
        )
        raise

    result.repos = list(touched.values())
    logger.info(
        "sync_complete provider=%s created=%s updated=%s deleted=%s total=%s",
        provider_name,
        result.created,
        result.updated,
        result.deleted,
        result.total,
    )
    return result


async def sync_provider(
    provider: SourceProvider,
    *,
    fetch_options: FetchOptions | None = None,
    options: SyncOptions | None = None,
    store: RecordStore = repository,
) -> SyncResult:
    """
    Fetch everything from `provider` and reconcile it into the store.

    A fetch failure propagates before any local write happens.
    """
    items = await provider.fetch_all(fetch_options)
    return await sync(provider.name, items, options, store=store)


async def sync_single(
    provider: SourceProvider,
    item_name: str,
    *,
    options: SyncOptions | None = None,
    store: RecordStore = repository,
) -> SyncResult:
    """
    Refresh one item by name. Never deletes anything.
    """
    item = await provider.fetch_one(item_name)
    options = options or SyncOptions()
    single_options = SyncOptions(
        preserve_custom_fields=options.preserve_custom_fields,
        update_existing=options.update_existing,
        delete_removed=False,
    )
    return await sync(provider.name, [item], single_options, store=store)
