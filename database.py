"""
Snapshot storage for the booking store

A snapshot is the whole booking collection plus the time it was written,
kept as one JSON document under a fixed key. Three backends share the same
load/save contract:

- JsonFilePersistence: a JSON file on local disk (default)
- MongoPersistence: one document in a MongoDB collection
- InMemoryPersistence: a dict, for tests and throwaway sessions

load() returns None when nothing has been saved yet and raises
PersistenceError when stored data exists but cannot be read. save() raises
PersistenceError when the write fails.
"""

import json
import logging
import os
import tempfile
from typing import Any, Dict, Optional

from pydantic import ValidationError as SchemaError
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from errors import PersistenceError
from schemas import Snapshot

logger = logging.getLogger(__name__)

STORAGE_KEY = "booking-calendar-data"


def snapshot_to_document(snapshot: Snapshot) -> Dict[str, Any]:
    return snapshot.model_dump(mode="json", by_alias=True, exclude_none=True)


def document_to_snapshot(document: Dict[str, Any]) -> Snapshot:
    try:
        return Snapshot.model_validate(document)
    except SchemaError as e:
        raise PersistenceError(
            "Stored booking data is unreadable",
            details={"errors": e.error_count()},
        ) from e


class PersistenceAdapter:
    """Base class: load() -> Snapshot | None, save(snapshot) -> None."""

    key: str = STORAGE_KEY

    def load(self) -> Optional[Snapshot]:
        raise NotImplementedError

    def save(self, snapshot: Snapshot) -> None:
        raise NotImplementedError

    def describe(self) -> str:
        return self.__class__.__name__


class InMemoryPersistence(PersistenceAdapter):
    def __init__(self, key: str = STORAGE_KEY):
        self.key = key
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.save_count = 0

    def load(self) -> Optional[Snapshot]:
        document = self.documents.get(self.key)
        if document is None:
            return None
        return document_to_snapshot(document)

    def save(self, snapshot: Snapshot) -> None:
        # Stored as plain JSON data so later mutations of the models can't leak in
        self.documents[self.key] = json.loads(json.dumps(snapshot_to_document(snapshot)))
        self.save_count += 1

    def describe(self) -> str:
        return "memory"


class JsonFilePersistence(PersistenceAdapter):
    """Keeps {key: snapshot} in a single JSON file, replaced atomically on save.

    A file that fails to load is moved to ``<path>.corrupt`` before the next
    save replaces it.
    """

    def __init__(self, path: str, key: str = STORAGE_KEY):
        self.path = path
        self.key = key
        self._unreadable = False

    @property
    def backup_path(self) -> str:
        return f"{self.path}.corrupt"

    def _read_file(self) -> Optional[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Unexpected content in {self.path}")
        return data

    def _set_aside(self) -> None:
        try:
            os.replace(self.path, self.backup_path)
        except OSError as e:
            raise PersistenceError(f"Cannot move unreadable {self.path} aside: {e}") from e
        logger.warning("Moved unreadable storage file %s to %s", self.path, self.backup_path)

    def load(self) -> Optional[Snapshot]:
        try:
            data = self._read_file()
            if data is None or self.key not in data:
                return None
            return document_to_snapshot(data[self.key])
        except PersistenceError:
            self._unreadable = True
            raise

    def save(self, snapshot: Snapshot) -> None:
        try:
            data = self._read_file() or {}
        except PersistenceError:
            self._unreadable = True
            data = {}
        if self._unreadable and os.path.exists(self.path):
            self._set_aside()
        self._unreadable = False
        data[self.key] = snapshot_to_document(snapshot)

        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".bookings-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e

    def describe(self) -> str:
        return f"file:{self.path}"


class MongoPersistence(PersistenceAdapter):
    """Stores the snapshot as the document {_id: key, ...snapshot} in a collection."""

    def __init__(self, collection, key: str = STORAGE_KEY):
        self.collection = collection
        self.key = key

    @classmethod
    def from_url(cls, url: str, database_name: str, collection_name: str, key: str = STORAGE_KEY):
        client = MongoClient(url, serverSelectionTimeoutMS=5000)
        return cls(client[database_name][collection_name], key=key)

    def load(self) -> Optional[Snapshot]:
        try:
            document = self.collection.find_one({"_id": self.key})
        except PyMongoError as e:
            raise PersistenceError(f"Cannot read bookings from MongoDB: {e}") from e
        if document is None:
            return None
        document = {k: v for k, v in document.items() if k != "_id"}
        return document_to_snapshot(document)

    def save(self, snapshot: Snapshot) -> None:
        document = snapshot_to_document(snapshot)
        try:
            self.collection.replace_one({"_id": self.key}, {"_id": self.key, **document}, upsert=True)
        except PyMongoError as e:
            raise PersistenceError(f"Cannot write bookings to MongoDB: {e}") from e

    def describe(self) -> str:
        return f"mongo:{self.collection.name}"
