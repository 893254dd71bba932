from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from src.api.services.nrql import primary_entity_guid

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_CONCURRENCY = 5


# PUBLIC_INTERFACE
async def bounded_map(
    items: Sequence[T],
    func: Callable[[T], Awaitable[Optional[R]]],
    limit: int = DEFAULT_CONCURRENCY,
) -> List[Optional[R]]:
    """
    Run func over items with at most `limit` calls in flight.

    The result has the same length and order as items. An exception raised for one
    item is logged and becomes None for that item; siblings keep running.
    """
    sem = asyncio.Semaphore(max(1, int(limit)))

    async def _one(index: int, item: T) -> Optional[R]:
        async with sem:
            try:
                return await func(item)
            except Exception:
                logger.exception("Enrichment failed for item #%s", index)
                return None

    return list(await asyncio.gather(*(_one(i, item) for i, item in enumerate(items))))


# PUBLIC_INTERFACE
async def enrich(
    items: Sequence[T],
    resolve: Callable[[T], Awaitable[Optional[R]]],
    merge: Callable[[T, Optional[R]], T],
    limit: int = DEFAULT_CONCURRENCY,
) -> List[T]:
    """Resolve every item under the concurrency ceiling and merge each result into its item."""
    resolved = await bounded_map(items, resolve, limit)
    return [merge(item, res) for item, res in zip(items, resolved)]


# PUBLIC_INTERFACE
def merge_real_entity(condition: Dict[str, Any], resolved: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Attach `realEntity` to a raw condition document.

    Resolved name/type/domain win; declared values fill whatever resolution did not return.
    Returns a new dict, the input is left untouched.
    """
    declared = condition.get("entity") if isinstance(condition.get("entity"), dict) else {}
    resolved = resolved or {}
    guid = primary_entity_guid(condition)

    real: Dict[str, Any] = {"guid": guid, "name": None, "type": None, "domain": None}
    if guid:
        for key in ("name", "type", "domain"):
            real[key] = resolved.get(key) or declared.get(key) or None

    out = dict(condition)
    out["realEntity"] = real
    return out
