import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from typing import Iterable, List

from pydantic import ValidationError as SchemaError

from errors import StorageError
from models import Group

logger = logging.getLogger(__name__)

STORAGE_VERSION = 1


def groups_to_dict(groups: Iterable[Group]) -> dict:
    """Convert groups to a JSON-ready document; dates become ISO-8601 strings"""
    return {
        "version": STORAGE_VERSION,
        "saved_at": datetime.now(timezone.utc).isoformat(),
        "groups": [group.model_dump(mode="json") for group in groups],
    }


def dict_to_groups(data: dict) -> List[Group]:
    """Convert a stored document back to Group objects"""
    if not isinstance(data, dict) or not isinstance(data.get("groups", []), list):
        raise StorageError("Stored document has an invalid layout")
    try:
        return [Group.model_validate(g) for g in data.get("groups", [])]
    except SchemaError as e:
        raise StorageError(f"Stored group is invalid: {e}") from e


class GroupRepository:
    """Loads and saves the whole group collection as one JSON file"""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> List[Group]:
        if not os.path.exists(self.path):
            logger.info(f"No groups file at {self.path}, starting empty")
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e

        groups = dict_to_groups(data)
        logger.info(f"Loaded {len(groups)} groups from {self.path}")
        return groups

    def save(self, groups: Iterable[Group]) -> None:
        document = groups_to_dict(groups)
        directory = os.path.dirname(os.path.abspath(self.path))

        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".groups-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Could not write {self.path}: {e}") from e

        logger.info(f"Saved {len(document['groups'])} groups to {self.path}")
