from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.core.schemas import SuccessResponse
from app.modules.todos.schemas import (
    TodoListCreate, TodoItemCreate, TodoItemUpdate, TodoReorder,
    TodoListEnvelope, TodoListsEnvelope
)
from app.modules.todos.service import TodoService
from app.core.dependencies import get_current_user
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/groups/{group_id}/todos", tags=["todos"])


def get_todo_service(supabase: Client = Depends(get_supabase)) -> TodoService:
    return TodoService(supabase)


@router.get("", response_model=TodoListsEnvelope)
async def list_todo_lists(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service)
):
    return {"lists": service.list_lists(group_id, user_data["id"])}


@router.post("", response_model=TodoListEnvelope, status_code=201)
async def create_todo_list(
    group_id: str,
    list_data: TodoListCreate,
    user_data: Dict = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service)
):
    """Create a list; duplicate item labels are collapsed"""
    return {"list": service.create_list(group_id, user_data["id"], list_data.title, list_data.items)}


@router.delete("/{list_id}", response_model=SuccessResponse)
async def delete_todo_list(
    group_id: str,
    list_id: str,
    user_data: Dict = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service)
):
    """Delete a list (creator only)"""
    service.delete_list(group_id, list_id, user_data["id"])
    return {"success": True}


@router.post("/{list_id}/items", response_model=TodoListEnvelope)
async def add_todo_item(
    group_id: str,
    list_id: str,
    item_data: TodoItemCreate,
    user_data: Dict = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service)
):
    return {"list": service.add_item(group_id, list_id, user_data["id"], item_data.label)}


@router.patch("/{list_id}/items/{item_id}", response_model=TodoListEnvelope)
async def update_todo_item(
    group_id: str,
    list_id: str,
    item_id: str,
    item_data: TodoItemUpdate,
    user_data: Dict = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service)
):
    """Set completed and/or label explicitly"""
    todo_list = service.update_item(
        group_id, list_id, item_id, user_data["id"],
        completed=item_data.completed,
        label=item_data.label,
    )
    return {"list": todo_list}


@router.post("/{list_id}/items/{item_id}/toggle", response_model=TodoListEnvelope)
async def toggle_todo_item(
    group_id: str,
    list_id: str,
    item_id: str,
    user_data: Dict = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service)
):
    return {"list": service.toggle_item(group_id, list_id, item_id, user_data["id"])}


@router.delete("/{list_id}/items/{item_id}", response_model=TodoListEnvelope)
async def remove_todo_item(
    group_id: str,
    list_id: str,
    item_id: str,
    user_data: Dict = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service)
):
    return {"list": service.remove_item(group_id, list_id, item_id, user_data["id"])}


@router.patch("/{list_id}/reorder", response_model=TodoListEnvelope)
async def reorder_todo_items(
    group_id: str,
    list_id: str,
    reorder_data: TodoReorder,
    user_data: Dict = Depends(get_current_user),
    service: TodoService = Depends(get_todo_service)
):
    """Apply a new item order; ids outside the list are ignored"""
    return {"list": service.reorder_items(group_id, list_id, reorder_data.item_ids, user_data["id"])}
