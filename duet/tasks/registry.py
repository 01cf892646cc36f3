"""Task registry and TOML catalogue loader.

Loads task definitions from tasks.toml and provides read-only lookup
by task id. The registry is built once at startup and never mutated.
"""

from __future__ import annotations

import tomllib
from collections.abc import Iterable, Iterator
from pathlib import Path

from pydantic import ValidationError

from duet.schemas.tasks import TaskDefinition

# Default config directory relative to the duet package
_CONFIG_DIR = Path(__file__).parent.parent / "config"


class TaskRegistry:
    """Immutable catalogue of task definitions, in catalogue order."""

    def __init__(self, definitions: Iterable[TaskDefinition]) -> None:
        tasks: dict[str, TaskDefinition] = {}
        for definition in definitions:
            if definition.id in tasks:
                raise ValueError(f"Duplicate task id: {definition.id}")
            tasks[definition.id] = definition
        self._tasks = tasks

    def lookup(self, task_id: str) -> TaskDefinition | None:
        """Return the definition for ``task_id``, or None if it is unknown."""
        return self._tasks.get(task_id)

    def all(self) -> list[TaskDefinition]:
        return list(self._tasks.values())

    def ids(self) -> list[str]:
        return list(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __iter__(self) -> Iterator[TaskDefinition]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)


def load_tasks(config_path: Path | None = None) -> TaskRegistry:
    """Load the task catalogue from a TOML file.

    Args:
        config_path: Path to tasks.toml. Defaults to duet/config/tasks.toml.

    Returns:
        A TaskRegistry holding every ``[tasks.<id>]`` entry.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML structure or an entry is invalid.
    """
    path = config_path or _CONFIG_DIR / "tasks.toml"
    if not path.exists():
        raise FileNotFoundError(f"Task catalogue not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    tasks_section = raw.get("tasks")
    if not tasks_section or not isinstance(tasks_section, dict):
        raise ValueError(f"No [tasks] section found in {path}")

    definitions: list[TaskDefinition] = []
    for task_id, entry in tasks_section.items():
        if not isinstance(entry, dict):
            continue
        try:
            definitions.append(TaskDefinition(id=task_id, **entry))
        except ValidationError as e:
            raise ValueError(f"Invalid task '{task_id}' in {path}: {e}") from e

    return TaskRegistry(definitions)
