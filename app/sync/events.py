"""
Change notifications for a group.

Notifications only say *that* something changed in a table; consumers
re-read the affected domain instead of merging the row, since delete
payloads carry nothing but the old keys.
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from itertools import count
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple
import logging

from supabase import AsyncClient
from realtime import RealtimeSubscribeStates

from app.database.supabase_client import create_realtime_client
from app.modules.polls.models import OPTIONS_TABLE, POLLS_TABLE, VOTES_TABLE
from app.modules.statuses.models import STATUSES_TABLE
from app.modules.todos.models import ITEMS_TABLE, LISTS_TABLE

logger = logging.getLogger(__name__)


class Domain(str, Enum):
    STATUSES = "statuses"
    POLLS = "polls"
    TODOS = "todos"


TABLE_DOMAINS: Dict[str, Domain] = {
    STATUSES_TABLE: Domain.STATUSES,
    POLLS_TABLE: Domain.POLLS,
    OPTIONS_TABLE: Domain.POLLS,
    VOTES_TABLE: Domain.POLLS,
    LISTS_TABLE: Domain.TODOS,
    ITEMS_TABLE: Domain.TODOS,
}


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: str  # insert | update | delete
    row: Dict[str, Any] = field(default_factory=dict)

    @property
    def domain(self) -> Optional[Domain]:
        return TABLE_DOMAINS.get(self.table)


ChangeHandler = Callable[[ChangeEvent], None]
SubscribedCallback = Callable[[], None]


class Subscription(Protocol):
    async def unsubscribe(self) -> None: ...


class EventBus(Protocol):
    async def subscribe(
        self,
        group_id: str,
        handler: ChangeHandler,
        poll_ids: Iterable[str] = (),
        list_ids: Iterable[str] = (),
        on_subscribed: Optional[SubscribedCallback] = None,
    ) -> Subscription: ...


def build_in_filter(column: str, values: Iterable[str]) -> Optional[str]:
    """PostgREST-style `column=in.("a","b")` filter, or None when there is nothing to watch."""
    values = list(values)
    if not values:
        return None
    joined = ",".join('"{}"'.format(v.replace('"', '""')) for v in values)
    return f"{column}=in.({joined})"


def watched_tables(group_id: str, poll_ids: Iterable[str], list_ids: Iterable[str]) -> List[Tuple[str, str]]:
    """(table, filter) pairs for one group. Child tables have no group_id so they are watched by parent id."""
    pairs = [
        (STATUSES_TABLE, f"group_id=eq.{group_id}"),
        (POLLS_TABLE, f"group_id=eq.{group_id}"),
        (LISTS_TABLE, f"group_id=eq.{group_id}"),
    ]
    poll_filter = build_in_filter("poll_id", sorted(poll_ids))
    if poll_filter:
        pairs.append((OPTIONS_TABLE, poll_filter))
        pairs.append((VOTES_TABLE, poll_filter))
    list_filter = build_in_filter("list_id", sorted(list_ids))
    if list_filter:
        pairs.append((ITEMS_TABLE, list_filter))
    return pairs


def parse_postgres_change(table: str, payload: Dict[str, Any]) -> ChangeEvent:
    data = payload.get("data", payload)
    event = (data.get("type") or data.get("eventType") or "").lower()
    row = data.get("record") or data.get("new") or data.get("old_record") or data.get("old") or {}
    return ChangeEvent(table=data.get("table") or table, event=event, row=dict(row))


class RealtimeSubscription:
    def __init__(self, client: AsyncClient, channel):
        self.client = client
        self.channel = channel

    async def unsubscribe(self) -> None:
        await self.client.remove_channel(self.channel)


class SupabaseRealtimeBus:
    """EventBus backed by Supabase Realtime postgres_changes."""

    def __init__(self, client: AsyncClient):
        self.client = client
        # Topics are unique per subscription; a replacement opens before the old one closes
        self._serial = count(1)

    @classmethod
    async def connect(cls, access_token: Optional[str] = None) -> "SupabaseRealtimeBus":
        return cls(await create_realtime_client(access_token))

    def _dispatch(self, table: str, handler: ChangeHandler, payload: Dict[str, Any]) -> None:
        try:
            handler(parse_postgres_change(table, payload))
        except Exception as e:
            logger.error(f"Change handler failed for {table}: {e}")

    async def subscribe(
        self,
        group_id: str,
        handler: ChangeHandler,
        poll_ids: Iterable[str] = (),
        list_ids: Iterable[str] = (),
        on_subscribed: Optional[SubscribedCallback] = None,
    ) -> Subscription:
        channel = self.client.channel(f"group:{group_id}:{next(self._serial)}")
        for table, row_filter in watched_tables(group_id, poll_ids, list_ids):
            channel.on_postgres_changes(
                "*",
                table=table,
                filter=row_filter,
                callback=partial(self._dispatch, table, handler),
            )

        def on_state(state, error=None):
            if state == RealtimeSubscribeStates.SUBSCRIBED:
                logger.debug(f"Subscribed to changes for group {group_id}")
                if on_subscribed:
                    on_subscribed()
            elif error:
                logger.warning(f"Realtime channel for group {group_id} reported {state}: {error}")

        await channel.subscribe(on_state)
        return RealtimeSubscription(self.client, channel)
