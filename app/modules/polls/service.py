from supabase import Client
from app.core.exceptions import InvalidArgument, NotFound, Unavailable
from app.core.labels import clean_labels, has_duplicate_labels
from app.core.membership import ensure_group_member, ensure_creator
from app.modules.polls.models import POLLS_TABLE, OPTIONS_TABLE, VOTES_TABLE
from app.modules.polls.schemas import PollResponse, PollOptionResponse
from typing import Dict, List, Optional, Tuple
from fastapi import HTTPException
import math
import logging

logger = logging.getLogger(__name__)

MIN_OPTIONS = 2
MAX_OPTIONS = 6

POLL_SELECT = "id, group_id, question, created_by, created_at"
OPTION_SELECT = "id, poll_id, label, position, created_at"
VOTE_SELECT = "poll_id, option_id, user_id"


def vote_percentage(count: int, total: int) -> int:
    """Whole-number share of the vote, rounding halves up. Zero votes overall means 0% everywhere."""
    if total <= 0:
        return 0
    return int(math.floor(100 * count / total + 0.5))


def tally_poll(option_rows: List[dict], vote_rows: List[dict]) -> Tuple[List[PollOptionResponse], int]:
    """Group votes by option. Votes pointing at options outside this poll are ignored."""
    voters: Dict[str, List[str]] = {row["id"]: [] for row in option_rows}
    for vote in vote_rows:
        if vote["option_id"] in voters:
            voters[vote["option_id"]].append(vote["user_id"])
    total = sum(len(v) for v in voters.values())

    options = []
    for row in sorted(option_rows, key=lambda r: r.get("position") or 0):
        option_voters = voters[row["id"]]
        options.append(PollOptionResponse(
            id=row["id"],
            poll_id=row["poll_id"],
            label=row["label"],
            position=row.get("position") or 0,
            voters=option_voters,
            vote_count=len(option_voters),
            percentage=vote_percentage(len(option_voters), total),
            created_at=row.get("created_at"),
        ))
    return options, total


class PollService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _assemble(self, poll_rows: List[dict]) -> List[PollResponse]:
        """Attach options and tallies to poll rows, preserving the rows' order"""
        if not poll_rows:
            return []
        poll_ids = [p["id"] for p in poll_rows]
        options_result = self.supabase.table(OPTIONS_TABLE)\
            .select(OPTION_SELECT)\
            .in_("poll_id", poll_ids)\
            .execute()
        votes_result = self.supabase.table(VOTES_TABLE)\
            .select(VOTE_SELECT)\
            .in_("poll_id", poll_ids)\
            .execute()

        options_by_poll: Dict[str, List[dict]] = {pid: [] for pid in poll_ids}
        for row in options_result.data or []:
            options_by_poll.setdefault(row["poll_id"], []).append(row)
        votes_by_poll: Dict[str, List[dict]] = {pid: [] for pid in poll_ids}
        for row in votes_result.data or []:
            votes_by_poll.setdefault(row["poll_id"], []).append(row)

        polls = []
        for row in poll_rows:
            options, total = tally_poll(options_by_poll[row["id"]], votes_by_poll[row["id"]])
            polls.append(PollResponse(**row, options=options, total_votes=total))
        return polls

    def _find_poll(self, group_id: str, poll_id: str) -> PollResponse:
        """Load one poll; polls from other groups are reported as missing"""
        try:
            result = self.supabase.table(POLLS_TABLE)\
                .select(POLL_SELECT)\
                .eq("id", poll_id)\
                .maybe_single()\
                .execute()
            row = result.data if result else None
            if not row or row["group_id"] != group_id:
                raise NotFound("Poll not found.")
            return self._assemble([row])[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to load poll {poll_id}: {e}")
            raise Unavailable("Unable to load poll.")

    def list_polls(self, group_id: str, user_id: str) -> List[PollResponse]:
        """Polls in a group, newest first"""
        ensure_group_member(group_id, user_id, self.supabase)
        try:
            result = self.supabase.table(POLLS_TABLE)\
                .select(POLL_SELECT)\
                .eq("group_id", group_id)\
                .order("created_at", desc=True)\
                .execute()
            return self._assemble(result.data or [])
        except Exception as e:
            logger.error(f"Failed to load polls for group {group_id}: {e}")
            raise Unavailable("Unable to load polls.")

    def get_poll(self, group_id: str, poll_id: str, user_id: str) -> PollResponse:
        ensure_group_member(group_id, user_id, self.supabase)
        return self._find_poll(group_id, poll_id)

    def create_poll(self, group_id: str, creator_id: str, question: str, options: List[str]) -> PollResponse:
        """
        Create a poll with its options as one unit.

        The poll row is written first; if the option rows cannot be written
        the poll row is deleted again before the error is raised, so other
        members never see a poll without options.
        """
        ensure_group_member(group_id, creator_id, self.supabase)
        question = (question or "").strip()
        labels = clean_labels(options or [])
        if not question:
            raise InvalidArgument("Question is required.")
        if len(labels) < MIN_OPTIONS:
            raise InvalidArgument("At least two options are required.")
        if len(labels) > MAX_OPTIONS:
            raise InvalidArgument("Too many options provided.")
        if has_duplicate_labels(labels):
            raise InvalidArgument("Poll options must be unique.")

        try:
            poll_result = self.supabase.table(POLLS_TABLE).insert({
                "group_id": group_id,
                "question": question,
                "created_by": creator_id,
            }).execute()
            if not poll_result.data:
                raise Unavailable("Unable to create poll.")
            poll_id = poll_result.data[0]["id"]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to create poll in group {group_id}: {e}")
            raise Unavailable("Unable to create poll.")

        try:
            self.supabase.table(OPTIONS_TABLE).insert([
                {"poll_id": poll_id, "label": label, "position": index}
                for index, label in enumerate(labels)
            ]).execute()
        except Exception as e:
            logger.error(f"Failed to create options for poll {poll_id}, rolling back: {e}")
            self._rollback_poll(poll_id)
            raise Unavailable("Unable to create poll.")

        logger.info(f"Poll {poll_id} created in group {group_id} with {len(labels)} options")
        return self._find_poll(group_id, poll_id)

    def _rollback_poll(self, poll_id: str) -> None:
        try:
            self.supabase.table(OPTIONS_TABLE).delete().eq("poll_id", poll_id).execute()
            self.supabase.table(POLLS_TABLE).delete().eq("id", poll_id).execute()
        except Exception as e:
            logger.error(f"Compensating delete failed for poll {poll_id}: {e}")

    def vote(self, group_id: str, poll_id: str, voter_id: str, option_id: Optional[str]) -> PollResponse:
        """
        Toggle-replace vote: drop whatever vote this voter has on the poll,
        then record option_id if one was given. Passing None clears the vote.
        """
        ensure_group_member(group_id, voter_id, self.supabase)
        poll = self._find_poll(group_id, poll_id)
        if option_id and not any(option.id == option_id for option in poll.options):
            raise NotFound("Option not found for this poll.")

        try:
            self.supabase.table(VOTES_TABLE)\
                .delete()\
                .eq("poll_id", poll_id)\
                .eq("user_id", voter_id)\
                .execute()
            if option_id:
                self.supabase.table(VOTES_TABLE).insert({
                    "poll_id": poll_id,
                    "option_id": option_id,
                    "user_id": voter_id,
                }).execute()
        except Exception as e:
            logger.error(f"Failed to save vote on poll {poll_id}: {e}")
            raise Unavailable("Unable to save vote.")

        return self._find_poll(group_id, poll_id)

    def delete_poll(self, group_id: str, poll_id: str, requester_id: str) -> None:
        """Creator-only delete; removes votes and options with the poll"""
        ensure_group_member(group_id, requester_id, self.supabase)
        poll = self._find_poll(group_id, poll_id)
        ensure_creator(poll.created_by, requester_id, "Only the poll creator can remove it.")
        try:
            self.supabase.table(VOTES_TABLE).delete().eq("poll_id", poll_id).execute()
            self.supabase.table(OPTIONS_TABLE).delete().eq("poll_id", poll_id).execute()
            self.supabase.table(POLLS_TABLE).delete().eq("id", poll_id).execute()
        except Exception as e:
            logger.error(f"Failed to delete poll {poll_id}: {e}")
            raise Unavailable("Unable to delete poll.")
        logger.info(f"Poll {poll_id} deleted by {requester_id}")
