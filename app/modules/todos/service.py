from supabase import Client
from app.core.exceptions import InvalidArgument, NotFound, Unavailable
from app.core.labels import normalize_label, unique_preserve_order
from app.core.membership import ensure_group_member, ensure_creator
from app.modules.todos.models import LISTS_TABLE, ITEMS_TABLE
from app.modules.todos.schemas import TodoListResponse, TodoItemResponse
from typing import Dict, List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

MIN_ITEMS = 1
MAX_ITEMS = 10

LIST_SELECT = "id, group_id, title, created_by, created_at"
ITEM_SELECT = "id, list_id, label, completed, position, created_at"


class TodoService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _assemble(self, list_rows: List[dict]) -> List[TodoListResponse]:
        if not list_rows:
            return []
        list_ids = [row["id"] for row in list_rows]
        items_result = self.supabase.table(ITEMS_TABLE)\
            .select(ITEM_SELECT)\
            .in_("list_id", list_ids)\
            .order("position")\
            .execute()
        group_of = {row["id"]: row["group_id"] for row in list_rows}
        items_by_list: Dict[str, List[TodoItemResponse]] = {lid: [] for lid in list_ids}
        for item in items_result.data or []:
            items_by_list.setdefault(item["list_id"], []).append(TodoItemResponse(
                id=item["id"],
                list_id=item["list_id"],
                group_id=group_of.get(item["list_id"], ""),
                label=item["label"],
                completed=bool(item.get("completed")),
                position=item.get("position") or 0,
                created_at=item.get("created_at"),
            ))
        lists = []
        for row in list_rows:
            items = sorted(items_by_list[row["id"]], key=lambda i: i.position)
            lists.append(TodoListResponse(**row, items=items))
        return lists

    def _load_list(self, group_id: str, list_id: str) -> TodoListResponse:
        """Fetch one list with items; lists from other groups are reported as missing"""
        try:
            result = self.supabase.table(LISTS_TABLE)\
                .select(LIST_SELECT)\
                .eq("id", list_id)\
                .maybe_single()\
                .execute()
            row = result.data if result else None
            if not row or row["group_id"] != group_id:
                raise NotFound("List not found.")
            return self._assemble([row])[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to load list {list_id}: {e}")
            raise Unavailable("Unable to load list.")

    def _find_item(self, todo_list: TodoListResponse, item_id: str) -> TodoItemResponse:
        for item in todo_list.items:
            if item.id == item_id:
                return item
        raise NotFound("Item not found.")

    def list_lists(self, group_id: str, user_id: str) -> List[TodoListResponse]:
        """Lists in a group, newest first, items in position order"""
        ensure_group_member(group_id, user_id, self.supabase)
        try:
            result = self.supabase.table(LISTS_TABLE)\
                .select(LIST_SELECT)\
                .eq("group_id", group_id)\
                .order("created_at", desc=True)\
                .execute()
            return self._assemble(result.data or [])
        except Exception as e:
            logger.error(f"Failed to load todo lists for group {group_id}: {e}")
            raise Unavailable("Unable to load group lists.")

    def create_list(self, group_id: str, creator_id: str, title: str, items: List[str]) -> TodoListResponse:
        """
        Create a list with its initial items.

        Duplicate labels are collapsed case-insensitively rather than
        rejected; the first spelling wins and order is kept.
        """
        ensure_group_member(group_id, creator_id, self.supabase)
        title = (title or "").strip()
        labels = unique_preserve_order(items or [])
        if not title:
            raise InvalidArgument("List title is required.")
        if len(labels) < MIN_ITEMS:
            raise InvalidArgument("Add at least one item.")
        if len(labels) > MAX_ITEMS:
            raise InvalidArgument(f"Lists can include up to {MAX_ITEMS} tasks.")

        try:
            list_result = self.supabase.table(LISTS_TABLE).insert({
                "group_id": group_id,
                "title": title,
                "created_by": creator_id,
            }).execute()
            if not list_result.data:
                raise Unavailable("Unable to create list.")
            list_id = list_result.data[0]["id"]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to create todo list in group {group_id}: {e}")
            raise Unavailable("Unable to create list.")

        try:
            self.supabase.table(ITEMS_TABLE).insert([
                {"list_id": list_id, "label": label, "completed": False, "position": index}
                for index, label in enumerate(labels)
            ]).execute()
        except Exception as e:
            logger.error(f"Failed to create items for list {list_id}, rolling back: {e}")
            try:
                self.supabase.table(ITEMS_TABLE).delete().eq("list_id", list_id).execute()
                self.supabase.table(LISTS_TABLE).delete().eq("id", list_id).execute()
            except Exception as rollback_error:
                logger.error(f"Compensating delete failed for list {list_id}: {rollback_error}")
            raise Unavailable("Unable to create list.")

        return self._load_list(group_id, list_id)

    def delete_list(self, group_id: str, list_id: str, requester_id: str) -> None:
        """Creator-only delete; items go with the list"""
        ensure_group_member(group_id, requester_id, self.supabase)
        todo_list = self._load_list(group_id, list_id)
        ensure_creator(todo_list.created_by, requester_id, "Only the list creator can remove it.")
        try:
            self.supabase.table(ITEMS_TABLE).delete().eq("list_id", list_id).execute()
            self.supabase.table(LISTS_TABLE)\
                .delete()\
                .eq("id", list_id)\
                .eq("group_id", group_id)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to delete todo list {list_id}: {e}")
            raise Unavailable("Unable to delete list.")
        logger.info(f"List {list_id} deleted by {requester_id}")

    def add_item(self, group_id: str, list_id: str, user_id: str, label: str) -> TodoListResponse:
        ensure_group_member(group_id, user_id, self.supabase)
        label = (label or "").strip()
        if not label:
            raise InvalidArgument("Item label is required.")

        todo_list = self._load_list(group_id, list_id)
        if len(todo_list.items) >= MAX_ITEMS:
            raise InvalidArgument(f"Lists can include up to {MAX_ITEMS} tasks.")
        if any(normalize_label(item.label) == normalize_label(label) for item in todo_list.items):
            raise InvalidArgument("That item is already on the list.")

        next_position = max((item.position for item in todo_list.items), default=-1) + 1
        try:
            self.supabase.table(ITEMS_TABLE).insert({
                "list_id": list_id,
                "label": label,
                "completed": False,
                "position": next_position,
            }).execute()
        except Exception as e:
            logger.error(f"Failed to insert item into list {list_id}: {e}")
            raise Unavailable("Unable to add item.")
        return self._load_list(group_id, list_id)

    def _write_item(self, list_id: str, item_id: str, updates: Dict) -> None:
        try:
            self.supabase.table(ITEMS_TABLE)\
                .update(updates)\
                .eq("id", item_id)\
                .eq("list_id", list_id)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to update item {item_id} in list {list_id}: {e}")
            raise Unavailable("Unable to update item.")

    def toggle_item(self, group_id: str, list_id: str, item_id: str, user_id: str) -> TodoListResponse:
        """Flip an item's completed flag"""
        ensure_group_member(group_id, user_id, self.supabase)
        item = self._find_item(self._load_list(group_id, list_id), item_id)
        self._write_item(list_id, item_id, {"completed": not item.completed})
        return self._load_list(group_id, list_id)

    def update_item(
        self,
        group_id: str,
        list_id: str,
        item_id: str,
        user_id: str,
        completed: Optional[bool] = None,
        label: Optional[str] = None,
    ) -> TodoListResponse:
        """Set completed and/or relabel an item to an explicit value"""
        ensure_group_member(group_id, user_id, self.supabase)
        updates: Dict = {}
        if completed is not None:
            updates["completed"] = completed
        trimmed = (label or "").strip()
        if trimmed:
            updates["label"] = trimmed
        if not updates:
            raise InvalidArgument("No updates provided.")

        todo_list = self._load_list(group_id, list_id)
        self._find_item(todo_list, item_id)
        if "label" in updates and any(
            item.id != item_id and normalize_label(item.label) == normalize_label(trimmed)
            for item in todo_list.items
        ):
            raise InvalidArgument("That item is already on the list.")
        self._write_item(list_id, item_id, updates)
        return self._load_list(group_id, list_id)

    def remove_item(self, group_id: str, list_id: str, item_id: str, user_id: str) -> TodoListResponse:
        """
        Remove an item and close the gap it leaves in the positions.

        A list may be emptied this way; the one-item minimum only applies
        when the list is created.
        """
        ensure_group_member(group_id, user_id, self.supabase)
        todo_list = self._load_list(group_id, list_id)
        self._find_item(todo_list, item_id)
        try:
            self.supabase.table(ITEMS_TABLE)\
                .delete()\
                .eq("id", item_id)\
                .eq("list_id", list_id)\
                .execute()
            remaining = [item for item in todo_list.items if item.id != item_id]
            for index, item in enumerate(remaining):
                if item.position != index:
                    self.supabase.table(ITEMS_TABLE)\
                        .update({"position": index})\
                        .eq("id", item.id)\
                        .eq("list_id", list_id)\
                        .execute()
        except Exception as e:
            logger.error(f"Failed to delete item {item_id} from list {list_id}: {e}")
            raise Unavailable("Unable to delete item.")
        return self._load_list(group_id, list_id)

    def reorder_items(self, group_id: str, list_id: str, item_ids: List[str], user_id: str) -> TodoListResponse:
        """
        Assign position = index for each id, scoped to this list.

        Ids that do not belong to the list match no row and are skipped by
        the store filter. Updates run one per item and stop at the first
        failure; the list may then be partly reordered, which the client
        repairs by re-reading it.
        """
        ensure_group_member(group_id, user_id, self.supabase)
        if not item_ids:
            raise InvalidArgument("Item order is required.")
        self._load_list(group_id, list_id)

        for index, item_id in enumerate(item_ids):
            try:
                self.supabase.table(ITEMS_TABLE)\
                    .update({"position": index})\
                    .eq("id", item_id)\
                    .eq("list_id", list_id)\
                    .execute()
            except Exception as e:
                logger.error(f"Failed to reorder list {list_id} at item {item_id}: {e}")
                raise Unavailable("Unable to reorder items.")
        return self._load_list(group_id, list_id)
