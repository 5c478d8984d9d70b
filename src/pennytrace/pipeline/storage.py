"""JSON file storage shared by the pipeline stages.

Stages exchange data only through files: each stage reads what the previous
one wrote and overwrites its own outputs wholesale. All files are
pretty-printed camelCase JSON.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

import orjson
from pydantic import BaseModel

from pennytrace.core.logging import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def dump(model: BaseModel) -> dict[str, Any]:
    """Serialize a model the way it is written to disk."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def write_json(path: Path, data: BaseModel | dict[str, Any] | list[Any]) -> Path:
    """Write `data` to `path`, creating parent directories."""
    payload = dump(data) if isinstance(data, BaseModel) else data
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
    logger.debug("Wrote JSON file", path=str(path))
    return path


def write_text(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logger.debug("Wrote text file", path=str(path))
    return path


def read_json(path: Path) -> Any:
    """Read a JSON file. Raises FileNotFoundError or orjson.JSONDecodeError."""
    return orjson.loads(path.read_bytes())


def read_model(path: Path, model: type[ModelT]) -> ModelT | None:
    """Read and validate a JSON file, or None when it does not exist."""
    if not path.is_file():
        return None
    return model.model_validate(read_json(path))


def ensure_dirs(*dirs: Path) -> None:
    for directory in dirs:
        directory.mkdir(parents=True, exist_ok=True)
