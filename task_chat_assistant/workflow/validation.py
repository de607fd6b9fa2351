"""Required-field check for tasks collected through chat."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

REQUIRED_FIELDS = ("title",)

_TASK_FIELDS = (
    ("title", "title"),
    ("description", "description"),
    ("priority", "priority"),
    ("dueDate", "dueDate"),
    ("due_date", "dueDate"),
)


@dataclass(slots=True)
class ValidationResult:
    can_create: bool
    task_data: Dict[str, Any]
    missing_fields: List[str] = field(default_factory=list)
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "canCreate": self.can_create,
            "taskData": dict(self.task_data),
            "message": self.message,
        }
        if not self.can_create:
            data["missingFields"] = list(self.missing_fields)
        return data


def validate_task_fields(fields: Mapping[str, Any]) -> ValidationResult:
    """Check candidate task fields against the required set.

    Empty values count as absent. No side effects.
    """
    task_data: Dict[str, Any] = {}
    for source_key, target_key in _TASK_FIELDS:
        value = fields.get(source_key)
        if isinstance(value, str):
            value = value.strip()
        if value and target_key not in task_data:
            task_data[target_key] = value

    missing = [name for name in REQUIRED_FIELDS if name not in task_data]
    if not missing:
        return ValidationResult(
            can_create=True,
            task_data=task_data,
            message="All required information collected. Ready to create task.",
        )

    collected = ", ".join(task_data) or "nothing yet"
    return ValidationResult(
        can_create=False,
        task_data=task_data,
        missing_fields=missing,
        message=(
            f"I need more information to create this task. "
            f"Missing: {', '.join(missing)}. Already have: {collected}."
        ),
    )
