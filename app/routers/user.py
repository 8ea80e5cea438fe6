# app/routers/user.py
from typing import Optional

from fastapi import APIRouter, Depends, status

from app.dependencies import get_sync_engine
from app.schemas import Envelope, UserOut, UserPayload
from app.services.sync_engine import SyncEngine
from app.utils.query_builder import USER_FIELDS, parse_list_params, parse_projection, parse_json, project
from app.utils.responses import send

router = APIRouter()


def serialize_user(user) -> dict:
    return UserOut.model_validate(user).model_dump(by_alias=True, mode="json")


@router.get("", response_model=Envelope)
def get_users(
    where: Optional[str] = None,
    sort: Optional[str] = None,
    select: Optional[str] = None,
    skip: Optional[str] = None,
    limit: Optional[str] = None,
    count: Optional[str] = None,
    engine: SyncEngine = Depends(get_sync_engine)
):
    """List users, or count them with count=true. No implicit limit."""
    list_query = parse_list_params(USER_FIELDS, where, sort, select, skip, limit, count)
    if list_query.count:
        return send(200, "OK", engine.count_users(list_query.where))

    users = engine.list_users(list_query)
    return send(200, "OK", [project(serialize_user(user), list_query.select) for user in users])


@router.post("", response_model=Envelope, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserPayload, engine: SyncEngine = Depends(get_sync_engine)):
    user = engine.create_user(payload)
    return send(201, "User created", serialize_user(user))


@router.get("/{user_id}", response_model=Envelope)
def get_user(user_id: str, select: Optional[str] = None, engine: SyncEngine = Depends(get_sync_engine)):
    projection = parse_projection(USER_FIELDS, parse_json(select, None))
    user = engine.get_user(user_id)
    return send(200, "OK", project(serialize_user(user), projection))


@router.put("/{user_id}", response_model=Envelope)
def update_user(user_id: str, payload: UserPayload, engine: SyncEngine = Depends(get_sync_engine)):
    """Replace a user; a pendingTasks list reassigns/unassigns the tasks that changed"""
    user = engine.update_user(user_id, payload)
    return send(200, "User updated", serialize_user(user))


@router.delete("/{user_id}", response_model=Envelope)
def delete_user(user_id: str, engine: SyncEngine = Depends(get_sync_engine)):
    engine.delete_user(user_id)
    return send(200, "User deleted (tasks unassigned)")
