# app/utils/query_builder.py
"""
List-query construction for the collection endpoints.

Clients send Mongo-style JSON in the ``where``, ``sort`` and ``select`` query
parameters plus integer ``skip``/``limit`` and a ``count`` flag. This module
parses them into a ``ListQuery`` and applies it to a SQLAlchemy query.

Error policy: a parameter that is not valid JSON is ignored (no constraint);
valid JSON that names an unknown field or operator, or carries a value of the
wrong type, raises ``ValidationError``.
"""

import json
import operator
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import and_, or_
from sqlalchemy.orm import Query

from app.exceptions import ValidationError
from app.models import Task, User

COMPARISONS: Dict[str, Callable] = {
    "$eq": operator.eq,
    "$ne": operator.ne,
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
}

SORT_DIRECTIONS = {
    1: "asc", "1": "asc", "asc": "asc", "ascending": "asc",
    -1: "desc", "-1": "desc", "desc": "desc", "descending": "desc",
}


@dataclass
class CollectionFields:
    """Maps wire field names to columns for one collection"""

    model: Any
    columns: Dict[str, Any]
    # Fields that exist on the wire but can only be projected
    projection_only: Tuple[str, ...] = ()

    @property
    def names(self) -> List[str]:
        return [name for name in self.columns if name != "id"] + list(self.projection_only)


USER_FIELDS = CollectionFields(
    model=User,
    columns={
        "_id": User.id,
        "id": User.id,
        "name": User.name,
        "email": User.email,
        "dateCreated": User.date_created,
    },
    projection_only=("pendingTasks",),
)

TASK_FIELDS = CollectionFields(
    model=Task,
    columns={
        "_id": Task.id,
        "id": Task.id,
        "name": Task.name,
        "description": Task.description,
        "deadline": Task.deadline,
        "completed": Task.completed,
        "assignedUser": Task.assigned_user,
        "assignedUserName": Task.assigned_user_name,
        "dateCreated": Task.date_created,
    },
)


@dataclass
class ListQuery:
    where: Dict[str, Any] = field(default_factory=dict)
    sort: List[Tuple[str, str]] = field(default_factory=list)
    select: Optional[Dict[str, int]] = None
    skip: int = 0
    limit: Optional[int] = None
    count: bool = False


def parse_json(raw: Optional[str], fallback=None):
    """Parse a JSON query parameter, falling back when it is absent or malformed"""
    if not raw:
        return fallback
    try:
        return json.loads(raw)
    except ValueError:
        return fallback


def parse_int(raw: Optional[str]) -> int:
    """Leading-integer parse; anything unparseable counts as 0"""
    if raw is None:
        return 0
    match = re.match(r"\s*([+-]?\d+)", str(raw))
    return int(match.group(1)) if match else 0


def parse_list_params(
    fields: CollectionFields,
    where: Optional[str] = None,
    sort: Optional[str] = None,
    select: Optional[str] = None,
    skip: Optional[str] = None,
    limit: Optional[str] = None,
    count: Optional[str] = None,
    default_limit: Optional[int] = None,
) -> ListQuery:
    """Turn raw list request parameters into a validated ListQuery"""
    query = ListQuery(where=parse_json(where, {}))
    if not isinstance(query.where, dict):
        raise ValidationError("Bad request: 'where' must be a JSON object")
    # Compile once so bad filters are reported before touching the store
    compile_filter(fields, query.where)

    query.count = (count or "").lower() == "true"
    if query.count:
        return query

    query.sort = parse_sort(fields, parse_json(sort, {}))
    query.select = parse_projection(fields, parse_json(select, None))

    query.skip = parse_int(skip)
    if query.skip < 0:
        raise ValidationError("Bad request: 'skip' must not be negative")

    if limit is not None and limit != "":
        # limit=0 means no cap
        query.limit = abs(parse_int(limit)) or None
    else:
        query.limit = default_limit
    return query


def _coerce_for(column) -> Callable[[Any], Any]:
    python_type = column.type.python_type
    adapter = TypeAdapter(python_type)

    def coerce(value):
        if value is None:
            return None
        try:
            coerced = adapter.validate_python(value)
        except PydanticValidationError:
            raise ValidationError(
                f"Bad request: value {value!r} is not a valid {python_type.__name__} for '{column.key}'"
            )
        if isinstance(coerced, datetime) and coerced.tzinfo is not None:
            coerced = coerced.astimezone(timezone.utc).replace(tzinfo=None)
        return coerced

    return coerce


def _column(fields: CollectionFields, name: str, purpose: str):
    if name in fields.projection_only:
        raise ValidationError(f"Bad request: field '{name}' cannot be used to {purpose}")
    if name not in fields.columns:
        raise ValidationError(f"Bad request: unknown field '{name}'")
    return fields.columns[name]


def _compile_condition(column, condition):
    coerce = _coerce_for(column)
    is_operator_dict = (
        isinstance(condition, dict)
        and condition
        and all(isinstance(key, str) and key.startswith("$") for key in condition)
    )
    if not is_operator_dict:
        return [column == coerce(condition)]

    clauses = []
    for op, operand in condition.items():
        if op in COMPARISONS:
            clauses.append(COMPARISONS[op](column, coerce(operand)))
        elif op in ("$in", "$nin"):
            if not isinstance(operand, list):
                raise ValidationError(f"Bad request: '{op}' expects a list")
            values = [coerce(item) for item in operand]
            clauses.append(column.in_(values) if op == "$in" else column.not_in(values))
        else:
            raise ValidationError(f"Bad request: unsupported operator '{op}'")
    return clauses


def compile_filter(fields: CollectionFields, expr: Dict[str, Any]) -> list:
    """Compile a Mongo-style filter document into SQLAlchemy clauses (ANDed)"""
    if not isinstance(expr, dict):
        raise ValidationError("Bad request: filter must be a JSON object")

    clauses = []
    for key, value in expr.items():
        if key in ("$and", "$or"):
            if not isinstance(value, list) or not value:
                raise ValidationError(f"Bad request: '{key}' expects a non-empty list")
            parts = [and_(*compile_filter(fields, sub)) for sub in value]
            clauses.append(and_(*parts) if key == "$and" else or_(*parts))
        elif key.startswith("$"):
            raise ValidationError(f"Bad request: unsupported operator '{key}'")
        else:
            clauses.extend(_compile_condition(_column(fields, key, "filter"), value))
    return clauses


def parse_sort(fields: CollectionFields, spec) -> List[Tuple[str, str]]:
    if not spec:
        return []
    if not isinstance(spec, dict):
        raise ValidationError("Bad request: 'sort' must be a JSON object")

    ordering = []
    for name, direction in spec.items():
        _column(fields, name, "sort")
        key = direction.lower() if isinstance(direction, str) else direction
        if isinstance(key, bool) or key not in SORT_DIRECTIONS:
            raise ValidationError(f"Bad request: invalid sort direction for '{name}'")
        ordering.append((name, SORT_DIRECTIONS[key]))
    return ordering


def parse_projection(fields: CollectionFields, spec) -> Optional[Dict[str, int]]:
    if not spec:
        return None
    if not isinstance(spec, dict):
        raise ValidationError("Bad request: 'select' must be a JSON object")

    projection = {}
    for name, flag in spec.items():
        wire_name = "_id" if name == "id" else name
        if wire_name != "_id" and wire_name not in fields.names:
            raise ValidationError(f"Bad request: unknown field '{name}'")
        if isinstance(flag, bool) or flag not in (0, 1):
            raise ValidationError(f"Bad request: projection value for '{name}' must be 0 or 1")
        projection[wire_name] = flag

    modes = {flag for name, flag in projection.items() if name != "_id"}
    if len(modes) > 1:
        raise ValidationError("Bad request: cannot mix inclusion and exclusion in 'select'")
    return projection


def apply_list_query(query: Query, fields: CollectionFields, list_query: ListQuery) -> Query:
    """Apply filter, ordering and pagination to a SQLAlchemy query"""
    clauses = compile_filter(fields, list_query.where)
    if clauses:
        query = query.filter(*clauses)
    for name, direction in list_query.sort:
        column = fields.columns[name]
        query = query.order_by(column.asc() if direction == "asc" else column.desc())
    if list_query.skip:
        query = query.offset(list_query.skip)
    if list_query.limit:
        query = query.limit(list_query.limit)
    return query


def project(document: Dict[str, Any], projection: Optional[Dict[str, int]]) -> Dict[str, Any]:
    """Apply an inclusion/exclusion projection to a serialized document"""
    if not projection:
        return document

    include_id = projection.get("_id", 1) == 1
    others = {name: flag for name, flag in projection.items() if name != "_id"}

    inclusive = all(flag == 1 for flag in others.values()) if others else include_id
    if inclusive:
        result = {name: document[name] for name in others if name in document}
    else:
        result = {name: value for name, value in document.items() if name not in others}

    if include_id and "_id" in document:
        result = {"_id": document["_id"], **result}
    else:
        result.pop("_id", None)
    return result
