from __future__ import annotations

from flask import Blueprint, g, make_response, request

from .. import clock
from ..auth.guards import require_csrf, require_session
from ..db import session_scope
from .services import create_task, delete_task, get_task, list_tasks, parse_task_input, update_task


tasks_bp = Blueprint("tasks", __name__)


@tasks_bp.before_request
def _guard():
    if request.method == "OPTIONS":
        return
    require_session()
    require_csrf()


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@tasks_bp.get("")
def list_route():
    with session_scope() as db:
        return list_tasks(db, account_id=g.auth["id"], args=request.args)


@tasks_bp.post("")
def create_route():
    values = parse_task_input(_payload(), partial=False)
    with session_scope() as db:
        task = create_task(db, account_id=g.auth["id"], values=values, now=clock.now())
        return task.to_dict(), 201


@tasks_bp.get("/<int:task_id>")
def get_route(task_id: int):
    with session_scope() as db:
        return get_task(db, account_id=g.auth["id"], task_id=task_id).to_dict()


@tasks_bp.put("/<int:task_id>")
def update_route(task_id: int):
    values = parse_task_input(_payload(), partial=True)
    with session_scope() as db:
        task = update_task(db, account_id=g.auth["id"], task_id=task_id, values=values, now=clock.now())
        return task.to_dict()


@tasks_bp.delete("/<int:task_id>")
def delete_route(task_id: int):
    with session_scope() as db:
        delete_task(db, account_id=g.auth["id"], task_id=task_id)
    return make_response("", 204)
