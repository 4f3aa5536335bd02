"""
Client-side view of one group, plus the local edits applied before the
server confirms them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from app.modules.polls.schemas import PollResponse
from app.modules.polls.service import vote_percentage
from app.modules.statuses.schemas import StatusResponse
from app.modules.todos.schemas import TodoListResponse
from app.sync.events import Domain


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def is_expired(status: StatusResponse, now: datetime) -> bool:
    return status.expires_at is not None and _aware(status.expires_at) <= _aware(now)


@dataclass
class GroupCache:
    statuses: Dict[str, StatusResponse] = field(default_factory=dict)  # by user_id
    polls: List[PollResponse] = field(default_factory=list)
    lists: List[TodoListResponse] = field(default_factory=list)
    dirty: Set[Domain] = field(default_factory=set)

    def replace_statuses(self, statuses: List[StatusResponse], now: datetime) -> None:
        self.statuses = {s.user_id: s for s in statuses if not is_expired(s, now)}

    def upsert_status(self, status: StatusResponse) -> None:
        self.statuses[status.user_id] = status

    def sweep_expired(self, now: datetime) -> int:
        expired = [user_id for user_id, s in self.statuses.items() if is_expired(s, now)]
        for user_id in expired:
            del self.statuses[user_id]
        return len(expired)

    def find_poll(self, poll_id: str) -> Optional[PollResponse]:
        return next((p for p in self.polls if p.id == poll_id), None)

    def put_poll(self, poll: PollResponse) -> None:
        """Replace in place, or add newest-first if unknown"""
        for index, existing in enumerate(self.polls):
            if existing.id == poll.id:
                self.polls[index] = poll
                return
        self.polls.insert(0, poll)

    def drop_poll(self, poll_id: str) -> None:
        self.polls = [p for p in self.polls if p.id != poll_id]

    def find_list(self, list_id: str) -> Optional[TodoListResponse]:
        return next((t for t in self.lists if t.id == list_id), None)

    def put_list(self, todo_list: TodoListResponse) -> None:
        for index, existing in enumerate(self.lists):
            if existing.id == todo_list.id:
                self.lists[index] = todo_list
                return
        self.lists.insert(0, todo_list)

    def drop_list(self, list_id: str) -> None:
        self.lists = [t for t in self.lists if t.id != list_id]

    @property
    def poll_ids(self) -> frozenset:
        return frozenset(p.id for p in self.polls)

    @property
    def list_ids(self) -> frozenset:
        return frozenset(t.id for t in self.lists)


def current_choice(poll: PollResponse, user_id: str) -> Optional[str]:
    return next((o.id for o in poll.options if user_id in o.voters), None)


def apply_vote(poll: PollResponse, user_id: str, option_id: Optional[str]) -> PollResponse:
    """Move user_id's vote to option_id (or clear it) and recompute the tally"""
    voters = {
        o.id: [v for v in o.voters if v != user_id] + ([user_id] if o.id == option_id else [])
        for o in poll.options
    }
    total = sum(len(v) for v in voters.values())
    options = [
        o.model_copy(update={
            "voters": voters[o.id],
            "vote_count": len(voters[o.id]),
            "percentage": vote_percentage(len(voters[o.id]), total),
        })
        for o in poll.options
    ]
    return poll.model_copy(update={"options": options, "total_votes": total})


def apply_toggle(todo_list: TodoListResponse, item_id: str, completed: bool) -> TodoListResponse:
    items = [
        item.model_copy(update={"completed": completed}) if item.id == item_id else item
        for item in todo_list.items
    ]
    return todo_list.model_copy(update={"items": items})


def apply_reorder(todo_list: TodoListResponse, item_ids: List[str]) -> TodoListResponse:
    """Listed items first in the given order, anything unlisted after them in its old order"""
    by_id = {item.id: item for item in todo_list.items}
    ordered = [by_id[i] for i in dict.fromkeys(item_ids) if i in by_id]
    ordered += [item for item in todo_list.items if item.id not in set(item_ids)]
    items = [item.model_copy(update={"position": index}) for index, item in enumerate(ordered)]
    return todo_list.model_copy(update={"items": items})


def apply_remove(todo_list: TodoListResponse, item_id: str) -> TodoListResponse:
    remaining = [item for item in todo_list.items if item.id != item_id]
    items = [item.model_copy(update={"position": index}) for index, item in enumerate(remaining)]
    return todo_list.model_copy(update={"items": items})
