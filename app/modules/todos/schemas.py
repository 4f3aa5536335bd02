from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class TodoListCreate(BaseModel):
    title: str
    items: List[str] = Field(default_factory=list)


class TodoItemCreate(BaseModel):
    label: str


class TodoItemUpdate(BaseModel):
    completed: Optional[bool] = None
    label: Optional[str] = None


class TodoReorder(BaseModel):
    item_ids: List[str] = Field(default_factory=list)


class TodoItemResponse(BaseModel):
    id: str
    list_id: str
    group_id: str
    label: str
    completed: bool = False
    position: int = 0
    created_at: Optional[datetime] = None


class TodoListResponse(BaseModel):
    id: str
    group_id: str
    title: str
    created_by: str
    created_at: datetime
    items: List[TodoItemResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class TodoListEnvelope(BaseModel):
    list: TodoListResponse


class TodoListsEnvelope(BaseModel):
    lists: List[TodoListResponse]
