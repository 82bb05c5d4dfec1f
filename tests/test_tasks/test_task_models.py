"""Tests for the Task model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from devdemon.tasks.models import Task, TaskKind


def test_priority_derived_from_kind():
    assert Task(kind=TaskKind.USER, payload="x").priority_class == 0
    assert Task(kind=TaskKind.AUTONOMOUS, payload="x").priority_class == 1


def test_mismatched_priority_rejected():
    with pytest.raises(ValidationError):
        Task(kind=TaskKind.USER, payload="x", priority_class=1)


def test_ids_are_unique():
    ids = {Task.user("x").id for _ in range(50)}
    assert len(ids) == 50
    assert all(len(task_id) == 12 for task_id in ids)


def test_task_is_immutable():
    task = Task.user("x")
    with pytest.raises(ValidationError):
        task.payload = "changed"


def test_accepts_camel_case_keys():
    task = Task.model_validate(
        {
            "id": "abc123abc123",
            "kind": "autonomous",
            "payload": "explore",
            "createdAt": "2026-01-02T03:04:05+00:00",
            "priorityClass": 1,
        }
    )
    assert task.kind == TaskKind.AUTONOMOUS
    assert task.created_at.year == 2026
