"""Task catalogue: immutable task definitions and their TOML loader."""

from duet.tasks.registry import TaskRegistry, load_tasks

__all__ = ["TaskRegistry", "load_tasks"]
