"""JSON persistence utilities for reading and writing Pydantic models."""

import tempfile
from pathlib import Path
from typing import TypeVar

from filelock import FileLock
from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


def _lock_for(path: Path) -> FileLock:
    return FileLock(path.with_suffix(path.suffix + ".lock"))


def write_json(path: str | Path, obj: BaseModel) -> None:
    """Write a Pydantic model to a JSON file atomically.

    Uses file locking and atomic write (write to temp, then rename) so a
    reader never observes a half-written document.

    Args:
        path: Destination JSON file
        obj: Pydantic model instance to write
    """
    path = Path(path)

    path.parent.mkdir(parents=True, exist_ok=True)

    with _lock_for(path):
        fd, temp_path_str = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        temp_path = Path(temp_path_str)
        try:
            with open(fd, "w", encoding="utf-8") as f:
                f.write(obj.model_dump_json(indent=2))
            temp_path.replace(path)
        finally:
            if temp_path.exists():
                temp_path.unlink()


def read_json(path: str | Path, model_class: type[T]) -> T:
    """Read a JSON file as a model instance.

    Args:
        path: Path to the JSON file
        model_class: Pydantic model class to parse the document as

    Returns:
        Model instance

    Raises:
        FileNotFoundError: If the file doesn't exist
        pydantic.ValidationError: If the document doesn't match the model
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with _lock_for(path):
        content = path.read_text(encoding="utf-8")

    return model_class.model_validate_json(content)


def delete_file(path: str | Path) -> bool:
    """Remove a persisted file if present.

    Returns:
        True if a file was removed, False if there was nothing to remove
    """
    path = Path(path)

    if not path.parent.exists():
        return False

    with _lock_for(path):
        if path.exists():
            path.unlink()
            return True
    return False
