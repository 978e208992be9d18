"""JSON file helpers shared by every module that persists under ``.ergosum/``.

Each write serialises the full document to a string first and only then
touches the file, so a serialisation error never truncates existing data.
"""
from __future__ import annotations

import json
import pathlib
from typing import TypeVar

from pydantic import BaseModel

M = TypeVar("M", bound=BaseModel)


def write_json(path: pathlib.Path, data: object) -> None:
    text = json.dumps(data, indent=2) + "\n"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def read_json(path: pathlib.Path) -> object | None:
    """Return the parsed document, or ``None`` when *path* does not exist."""
    if not path.is_file():
        return None
    return json.loads(path.read_text(encoding="utf-8"))


def write_model(path: pathlib.Path, model: BaseModel) -> None:
    write_json(path, model.model_dump(mode="json"))


def read_model(path: pathlib.Path, model_cls: type[M]) -> M | None:
    """Load *path* into *model_cls*; ``None`` when the file is absent."""
    data = read_json(path)
    if data is None:
        return None
    return model_cls.model_validate(data)
