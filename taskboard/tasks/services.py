from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select

from ..errors import NotFound, ValidationError
from ..models import Task

MAX_PAGE_SIZE = 50

SORT_FIELDS = {
    "createdAt": Task.created_at,
    "updatedAt": Task.updated_at,
    "dueDate": Task.due_date,
    "title": Task.title,
    "done": Task.done,
}


def _parse_positive_int(raw, name: str, default: int) -> int:
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError({name: "must be an integer"}) from None
    if value < 1:
        raise ValidationError({name: "must be at least 1"})
    return value


def _parse_due_date(raw) -> datetime | None:
    if raw in (None, ""):
        return None
    if not isinstance(raw, str):
        raise ValidationError({"dueDate": "must be an ISO-8601 string"})
    try:
        value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError({"dueDate": "must be an ISO-8601 string"}) from None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_task_input(data: dict, *, partial: bool) -> dict:
    errors: dict[str, str] = {}
    values: dict = {}

    if "title" in data or not partial:
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            errors["title"] = "title is required"
        else:
            values["title"] = title.strip()

    if "description" in data:
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            errors["description"] = "must be a string"
        else:
            values["description"] = description

    if "dueDate" in data:
        try:
            due_date = _parse_due_date(data.get("dueDate"))
        except ValidationError as exc:
            errors.update(exc.fields)
        else:
            if due_date is not None:
                values["due_date"] = due_date

    if "done" in data:
        done = data.get("done")
        if not isinstance(done, bool):
            errors["done"] = "must be a boolean"
        else:
            values["done"] = done

    if errors:
        raise ValidationError(errors)
    return values


def list_tasks(session, *, account_id: int, args) -> dict:
    page = _parse_positive_int(args.get("page"), "page", 1)
    page_size = min(MAX_PAGE_SIZE, _parse_positive_int(args.get("pageSize"), "pageSize", 10))
    search = (args.get("search") or "").strip()

    field, _, direction = (args.get("sort") or "createdAt:desc").partition(":")
    column = SORT_FIELDS.get(field or "createdAt")
    if column is None:
        raise ValidationError({"sort": f"unknown sort field {field!r}"})
    order = column.asc() if direction == "asc" else column.desc()

    conditions = [Task.account_id == account_id]
    if search:
        conditions.append(Task.title.ilike(f"%{search}%"))

    total = session.execute(select(func.count()).select_from(Task).where(*conditions)).scalar_one()
    rows = (
        session.execute(
            select(Task)
            .where(*conditions)
            .order_by(order, Task.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        .scalars()
        .all()
    )
    return {
        "items": [task.to_dict() for task in rows],
        "total": total,
        "page": page,
        "pageSize": page_size,
    }


def get_task(session, *, account_id: int, task_id: int) -> Task:
    task = session.execute(
        select(Task).where(Task.id == task_id, Task.account_id == account_id)
    ).scalar_one_or_none()
    if task is None:
        raise NotFound("Not found")
    return task


def create_task(session, *, account_id: int, values: dict, now: datetime) -> Task:
    task = Task(
        account_id=account_id,
        title=values["title"],
        description=values.get("description"),
        due_date=values.get("due_date"),
        done=values.get("done", False),
        created_at=now,
        updated_at=now,
    )
    session.add(task)
    session.flush()
    return task


def update_task(session, *, account_id: int, task_id: int, values: dict, now: datetime) -> Task:
    task = get_task(session, account_id=account_id, task_id=task_id)
    for name, value in values.items():
        setattr(task, name, value)
    task.updated_at = now
    session.flush()
    return task


def delete_task(session, *, account_id: int, task_id: int) -> None:
    task = get_task(session, account_id=account_id, task_id=task_id)
    session.delete(task)
