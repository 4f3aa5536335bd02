"""
GroupSync keeps a GroupCache in step with the server for one open group.

Three things feed it:
  * change notifications from an EventBus, which mark a domain dirty and
    trigger a re-read of that whole domain;
  * a slow poll that re-reads everything while the view is visible and no
    local mutation is in flight;
  * optimistic mutations, applied locally first and reconciled with the
    server's answer (or rolled back by re-reading on failure).

Every response is checked against the generation it was requested under,
so nothing lands in the cache after stop() or a restart. Reads are also
checked against a per-domain mutation counter, so a read that overlapped a
local mutation never overwrites that mutation's result.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Set, TypeVar

from app.config import settings
from app.modules.polls.schemas import PollResponse
from app.modules.statuses.schemas import StatusResponse, StatusTimeout, expiration_for
from app.modules.todos.schemas import TodoListResponse
from app.sync.api import ApiError, HaloApiClient
from app.sync.cache import (
    GroupCache, apply_remove, apply_reorder, apply_toggle, apply_vote, current_choice,
)
from app.sync.events import ChangeEvent, Domain, EventBus, Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GroupSync:
    def __init__(
        self,
        api: HaloApiClient,
        bus: EventBus,
        group_id: str,
        user_id: str,
        poll_interval: Optional[float] = None,
        sweep_interval: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.api = api
        self.bus = bus
        self.group_id = group_id
        self.user_id = user_id
        self.poll_interval = poll_interval or settings.sync_poll_interval_seconds
        self.sweep_interval = sweep_interval or settings.status_sweep_interval_seconds
        self.clock = clock

        self.cache = GroupCache()
        self.visible = True
        self.last_error: Optional[str] = None

        self._active = False
        self._generation = 0
        self._pending = 0
        self._mutations = {domain: 0 for domain in Domain}
        self._listening = False
        self._tasks: Set[asyncio.Task] = set()
        self._subscription: Optional[Subscription] = None
        self._watched: Optional[tuple] = None
        self._subscription_lock = asyncio.Lock()

    @property
    def active(self) -> bool:
        return self._active

    @property
    def pending(self) -> int:
        return self._pending

    def _is_current(self, generation: int) -> bool:
        return self._active and generation == self._generation

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def start(self) -> None:
        if self._active:
            return
        self._active = True
        self._generation += 1
        logger.info(f"Starting sync for group {self.group_id}")
        await self.refresh_all()
        self._listening = True
        await self._sync_subscription()
        self._spawn(self._poll_loop())
        self._spawn(self._sweep_loop())

    async def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        self._listening = False
        self._generation += 1
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        async with self._subscription_lock:
            if self._subscription is not None:
                try:
                    await self._subscription.unsubscribe()
                except Exception as e:
                    logger.warning(f"Failed to unsubscribe from group {self.group_id}: {e}")
            self._subscription = None
            self._watched = None
        logger.info(f"Stopped sync for group {self.group_id}")

    def set_visible(self, visible: bool) -> None:
        self.visible = visible

    async def refresh(self, domain: Domain) -> bool:
        """Replace one domain of the cache with a fresh read. Returns False if nothing was applied."""
        generation = self._generation
        mutations = self._mutations[domain]
        try:
            if domain == Domain.STATUSES:
                data = await self.api.list_statuses(self.group_id)
            elif domain == Domain.POLLS:
                data = await self.api.list_polls(self.group_id)
            else:
                data = await self.api.list_todo_lists(self.group_id)
        except ApiError as e:
            self.last_error = e.message
            logger.warning(f"Refreshing {domain.value} for group {self.group_id} failed: {e.message}")
            return False

        if not self._is_current(generation):
            logger.debug(f"Discarding stale {domain.value} response for group {self.group_id}")
            return False
        if mutations != self._mutations[domain]:
            logger.debug(f"Discarding {domain.value} response that overlapped a local change in group {self.group_id}")
            return False

        if domain == Domain.STATUSES:
            self.cache.replace_statuses(data, self.clock())
        elif domain == Domain.POLLS:
            self.cache.polls = list(data)
        else:
            self.cache.lists = list(data)
        self.cache.dirty.discard(domain)

        # start() opens the first subscription once every domain is loaded
        if self._listening:
            await self._sync_subscription()
        return True

    async def refresh_all(self) -> None:
        await asyncio.gather(*(self.refresh(domain) for domain in Domain))

    async def _sync_subscription(self) -> None:
        """(Re)subscribe when the set of polls or lists whose children we watch has changed.

        The old subscription stays open until its replacement is live. A failed
        subscribe leaves everything as it was, so the next refresh tries again.
        """
        async with self._subscription_lock:
            if not self._active:
                return
            watched = (self.cache.poll_ids, self.cache.list_ids)
            if self._subscription is not None and watched == self._watched:
                return
            try:
                subscription = await self.bus.subscribe(
                    self.group_id,
                    self.handle_change,
                    poll_ids=watched[0],
                    list_ids=watched[1],
                    on_subscribed=self._on_subscribed,
                )
            except Exception as e:
                logger.warning(f"Subscribing to changes for group {self.group_id} failed: {e}")
                return
            previous = self._subscription
            self._subscription = subscription
            self._watched = watched
            if previous is not None:
                try:
                    await previous.unsubscribe()
                except Exception as e:
                    logger.warning(f"Failed to close previous subscription for group {self.group_id}: {e}")

    def _on_subscribed(self) -> None:
        # Changes made before the channel was live would otherwise be missed
        if self._active:
            self._spawn(self.refresh_all())

    def handle_change(self, event: ChangeEvent) -> None:
        domain = event.domain
        if domain is None or not self._active:
            return
        self.cache.dirty.add(domain)
        self._spawn(self.refresh(domain))

    async def poll_once(self) -> bool:
        if not self._active or not self.visible or self._pending:
            return False
        await self.refresh_all()
        return True

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.poll_once()

    def sweep_expired(self) -> int:
        removed = self.cache.sweep_expired(self.clock())
        if removed:
            logger.debug(f"Dropped {removed} expired statuses for group {self.group_id}")
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep_expired()

    async def _mutate(
        self,
        domain: Domain,
        request: Callable[[], Awaitable[T]],
        optimistic: Optional[Callable[[], None]] = None,
        commit: Optional[Callable[[T], None]] = None,
    ) -> T:
        generation = self._generation
        self._pending += 1
        # Reads started before this point, or while the request is in flight, are superseded
        self._mutations[domain] += 1
        try:
            if optimistic:
                optimistic()
            try:
                result = await request()
            except ApiError as e:
                self._mutations[domain] += 1
                self.last_error = e.message
                if self._is_current(generation):
                    await self.refresh(domain)
                raise
            self._mutations[domain] += 1
            if commit and self._is_current(generation):
                commit(result)
            self.last_error = None
            return result
        finally:
            self._pending -= 1

    async def put_status(
        self,
        message: str,
        emoji: Optional[str] = None,
        image: Optional[str] = None,
        expires_in: StatusTimeout = StatusTimeout.NEVER,
    ) -> StatusResponse:
        def optimistic():
            now = self.clock()
            self.cache.upsert_status(StatusResponse(
                group_id=self.group_id,
                user_id=self.user_id,
                message=message.strip(),
                emoji=(emoji or "").strip() or None,
                image=image or None,
                expires_at=expiration_for(StatusTimeout(expires_in), now),
                updated_at=now,
            ))

        return await self._mutate(
            Domain.STATUSES,
            lambda: self.api.put_status(self.group_id, message, emoji, image, expires_in),
            optimistic=optimistic,
            commit=self.cache.upsert_status,
        )

    async def vote(self, poll_id: str, option_id: str) -> PollResponse:
        """
        Vote for option_id. Choosing the option already selected withdraws
        the vote instead.
        """
        poll = self.cache.find_poll(poll_id)
        target: Optional[str] = option_id
        if poll is not None and current_choice(poll, self.user_id) == option_id:
            target = None

        def optimistic():
            if poll is not None:
                self.cache.put_poll(apply_vote(poll, self.user_id, target))

        return await self._mutate(
            Domain.POLLS,
            lambda: self.api.vote(self.group_id, poll_id, target),
            optimistic=optimistic,
            commit=self.cache.put_poll,
        )

    async def create_poll(self, question: str, options: List[str]) -> PollResponse:
        return await self._mutate(
            Domain.POLLS,
            lambda: self.api.create_poll(self.group_id, question, options),
            commit=self.cache.put_poll,
        )

    async def delete_poll(self, poll_id: str) -> None:
        await self._mutate(
            Domain.POLLS,
            lambda: self.api.delete_poll(self.group_id, poll_id),
            optimistic=lambda: self.cache.drop_poll(poll_id),
        )

    def _optimistic_list(self, list_id: str, change: Callable[[TodoListResponse], TodoListResponse]):
        def apply():
            todo_list = self.cache.find_list(list_id)
            if todo_list is not None:
                self.cache.put_list(change(todo_list))
        return apply

    async def toggle_item(self, list_id: str, item_id: str) -> TodoListResponse:
        """Flip locally, then send the explicit new state"""
        todo_list = self.cache.find_list(list_id)
        item = next((i for i in todo_list.items if i.id == item_id), None) if todo_list else None
        completed = not item.completed if item else True
        return await self._mutate(
            Domain.TODOS,
            lambda: self.api.update_todo_item(self.group_id, list_id, item_id, completed=completed),
            optimistic=self._optimistic_list(list_id, lambda t: apply_toggle(t, item_id, completed)),
            commit=self.cache.put_list,
        )

    async def reorder_items(self, list_id: str, item_ids: List[str]) -> TodoListResponse:
        return await self._mutate(
            Domain.TODOS,
            lambda: self.api.reorder_todo_items(self.group_id, list_id, item_ids),
            optimistic=self._optimistic_list(list_id, lambda t: apply_reorder(t, item_ids)),
            commit=self.cache.put_list,
        )

    async def remove_item(self, list_id: str, item_id: str) -> TodoListResponse:
        return await self._mutate(
            Domain.TODOS,
            lambda: self.api.remove_todo_item(self.group_id, list_id, item_id),
            optimistic=self._optimistic_list(list_id, lambda t: apply_remove(t, item_id)),
            commit=self.cache.put_list,
        )

    async def add_item(self, list_id: str, label: str) -> TodoListResponse:
        return await self._mutate(
            Domain.TODOS,
            lambda: self.api.add_todo_item(self.group_id, list_id, label),
            commit=self.cache.put_list,
        )

    async def create_list(self, title: str, items: List[str]) -> TodoListResponse:
        return await self._mutate(
            Domain.TODOS,
            lambda: self.api.create_todo_list(self.group_id, title, items),
            commit=self.cache.put_list,
        )

    async def delete_list(self, list_id: str) -> None:
        await self._mutate(
            Domain.TODOS,
            lambda: self.api.delete_todo_list(self.group_id, list_id),
            optimistic=lambda: self.cache.drop_list(list_id),
        )
