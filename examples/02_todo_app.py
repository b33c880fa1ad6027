#!/usr/bin/env python3
"""Example: Migrating a todo application across three schema versions

- v1: todos are a list of ``{id, title, done}``.
- v2: todos become a map keyed by id, ``done`` becomes a status enum, and
  each todo gains ``created_at`` and a list of tag names.
- v3: tag names become a map of tag records, and todos gain a priority.

Usage:
    python examples/02_todo_app.py

Requirements:
    pip install vbare
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from vbare import VersionCodecSet, VersionedDataHandler, model_codec


# ---------------------------------------------------------------------------
# v1
# ---------------------------------------------------------------------------


class TodoV1(BaseModel):
    id: int
    title: str
    done: bool


class AppV1(BaseModel):
    todos: list[TodoV1]


# ---------------------------------------------------------------------------
# v2
# ---------------------------------------------------------------------------


class TodoStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class TodoV2(BaseModel):
    id: int
    title: str
    status: TodoStatus
    created_at: int = 0
    tags: list[str] = Field(default_factory=list)


class AppV2(BaseModel):
    todos: dict[int, TodoV2]
    settings: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# v3
# ---------------------------------------------------------------------------


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Tag(BaseModel):
    id: int
    name: str
    color: str | None = None


class TodoV3(BaseModel):
    id: int
    title: str
    status: TodoStatus
    created_at: int
    priority: Priority = Priority.MEDIUM
    tags: dict[int, Tag] = Field(default_factory=dict)


class AppV3(BaseModel):
    todos: dict[int, TodoV3]


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------


def app_v1_to_v2(app: AppV1) -> AppV2:
    todos = {
        t.id: TodoV2(
            id=t.id,
            title=t.title,
            status=TodoStatus.DONE if t.done else TodoStatus.OPEN,
        )
        for t in app.todos
    }
    return AppV2(todos=todos)


def app_v2_to_v3(app: AppV2) -> AppV3:
    todos: dict[int, TodoV3] = {}
    for todo_id, t in app.todos.items():
        tags = {i: Tag(id=i, name=name) for i, name in enumerate(t.tags, start=1)}
        todos[todo_id] = TodoV3(
            id=t.id,
            title=t.title,
            status=t.status,
            created_at=t.created_at,
            tags=tags,
        )
    return AppV3(todos=todos)


def app_v3_to_v2(app: AppV3) -> AppV2:
    todos = {
        todo_id: TodoV2(
            id=t.id,
            title=t.title,
            status=t.status,
            created_at=t.created_at,
            tags=[tag.name for tag in t.tags.values()],
        )
        for todo_id, t in app.todos.items()
    }
    return AppV2(todos=todos)


def app_v2_to_v1(app: AppV2) -> AppV1:
    return AppV1(
        todos=[
            TodoV1(id=t.id, title=t.title, done=t.status is TodoStatus.DONE)
            for t in app.todos.values()
        ]
    )


APP_VERSIONED: VersionedDataHandler[AppV3] = VersionedDataHandler.from_codecs(
    VersionCodecSet({1: model_codec(AppV1), 2: model_codec(AppV2), 3: model_codec(AppV3)}),
    upgrade_converters=[app_v1_to_v2, app_v2_to_v3],
    downgrade_converters=[app_v3_to_v2, app_v2_to_v1],
)


def main() -> None:
    stored_v1 = model_codec(AppV1).encode(
        AppV1(
            todos=[
                TodoV1(id=1, title="task a", done=False),
                TodoV1(id=2, title="task b", done=True),
            ]
        )
    )
    print(f"Stored v1 payload: {stored_v1.decode()}")

    app = APP_VERSIONED.deserialize(stored_v1, 1)
    for todo in app.todos.values():
        print(f"  #{todo.id} {todo.title!r} status={todo.status.value} priority={todo.priority.value}")

    app.todos[1].tags = {1: Tag(id=1, name="red"), 2: Tag(id=2, name="blue")}
    stored_v2 = APP_VERSIONED.serialize_with_embedded_version(app, 2)
    print(f"Written for a v2 reader ({len(stored_v2)} bytes): {stored_v2[2:].decode()}")

    back_to_v1 = APP_VERSIONED.serialize(app, 1)
    print(f"Written for a v1 reader: {back_to_v1.decode()}")


if __name__ == "__main__":
    main()
