# app/routers/task.py
from typing import Optional

from fastapi import APIRouter, Depends, status

from app.config.settings import Settings
from app.dependencies import get_settings, get_sync_engine
from app.schemas import Envelope, TaskOut, TaskPayload
from app.services.sync_engine import SyncEngine
from app.utils.query_builder import TASK_FIELDS, parse_list_params, parse_projection, parse_json, project
from app.utils.responses import send

router = APIRouter()


def serialize_task(task) -> dict:
    return TaskOut.model_validate(task).model_dump(by_alias=True, mode="json")


@router.get("", response_model=Envelope)
def get_tasks(
    where: Optional[str] = None,
    sort: Optional[str] = None,
    select: Optional[str] = None,
    skip: Optional[str] = None,
    limit: Optional[str] = None,
    count: Optional[str] = None,
    engine: SyncEngine = Depends(get_sync_engine),
    settings: Settings = Depends(get_settings)
):
    """List tasks (capped at DEFAULT_TASK_LIMIT unless limit is given), or count them"""
    list_query = parse_list_params(
        TASK_FIELDS, where, sort, select, skip, limit, count,
        default_limit=settings.default_task_limit,
    )
    if list_query.count:
        return send(200, "OK", engine.count_tasks(list_query.where))

    tasks = engine.list_tasks(list_query)
    return send(200, "OK", [project(serialize_task(task), list_query.select) for task in tasks])


@router.post("", response_model=Envelope, status_code=status.HTTP_201_CREATED)
def create_task(payload: TaskPayload, engine: SyncEngine = Depends(get_sync_engine)):
    task = engine.create_task(payload)
    return send(201, "Task created", serialize_task(task))


@router.get("/{task_id}", response_model=Envelope)
def get_task(task_id: str, select: Optional[str] = None, engine: SyncEngine = Depends(get_sync_engine)):
    projection = parse_projection(TASK_FIELDS, parse_json(select, None))
    task = engine.get_task(task_id)
    return send(200, "OK", project(serialize_task(task), projection))


@router.put("/{task_id}", response_model=Envelope)
def update_task(task_id: str, payload: TaskPayload, engine: SyncEngine = Depends(get_sync_engine)):
    task = engine.update_task(task_id, payload)
    return send(200, "Task updated", serialize_task(task))


@router.delete("/{task_id}", response_model=Envelope)
def delete_task(task_id: str, engine: SyncEngine = Depends(get_sync_engine)):
    engine.delete_task(task_id)
    return send(200, "Task deleted")
