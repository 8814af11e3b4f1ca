from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from finhub.dependencies import get_store
from finhub.schemas import WsActivityOut, WsCommentOut, WsTaskOut, WsUserOut
from finhub.store import RowStore, RowStoreError


logger = logging.getLogger(__name__)

router = APIRouter()


def _users_by_id(store: RowStore, user_ids) -> Dict[str, dict]:
    ids = sorted({user_id for user_id in user_ids if user_id})
    if not ids:
        return {}
    users = store.select("ws_users", columns=["id", "email", "name"], in_={"id": ids})
    return {user["id"]: user for user in users}


def _get_task_or_404(store: RowStore, task_id: int) -> dict:
    rows = store.select("ws_tasks", eq={"id": task_id}, limit=1)
    if not rows:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Task {task_id} not found")
    return rows[0]


@router.get("/users", response_model=dict)
async def list_users(store: RowStore = Depends(get_store)) -> dict:
    """Active workstream users, by name."""
    try:
        rows = store.select("ws_users", eq={"is_active": True}, order_by="name")
    except RowStoreError as e:
        logger.error("Error loading workstream users: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error loading workstream users: {e.user_message}",
        )
    users: List[WsUserOut] = [WsUserOut.model_validate(row) for row in rows]
    return {"success": True, "data": users}


@router.get("/tasks/{task_id}", response_model=dict)
async def get_task(task_id: int, store: RowStore = Depends(get_store)) -> dict:
    task = _get_task_or_404(store, task_id)
    return {"success": True, "data": WsTaskOut.model_validate(task)}


@router.get("/tasks/{task_id}/activity", response_model=dict)
async def get_task_activity(task_id: int, store: RowStore = Depends(get_store)) -> dict:
    """
    Activity log for a task, newest first.

    Each entry carries the acting user's email (null for system events or users
    that no longer exist).
    """
    _get_task_or_404(store, task_id)
    entries = store.select("ws_activity_log", eq={"task_id": task_id}, order_by="created_at", descending=True)
    users = _users_by_id(store, (entry["user_id"] for entry in entries))

    items = [
        WsActivityOut.model_validate({**entry, "user_email": users.get(entry["user_id"], {}).get("email")})
        for entry in entries
    ]
    return {"success": True, "data": items}


@router.get("/tasks/{task_id}/comments", response_model=dict)
async def get_task_comments(task_id: int, store: RowStore = Depends(get_store)) -> dict:
    _get_task_or_404(store, task_id)
    comments = store.select("ws_comments", eq={"task_id": task_id}, order_by="created_at")
    users = _users_by_id(store, (comment["user_id"] for comment in comments))

    items = [
        WsCommentOut.model_validate({**comment, "user_name": users.get(comment["user_id"], {}).get("name")})
        for comment in comments
    ]
    return {"success": True, "data": items}
