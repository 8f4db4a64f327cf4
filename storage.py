"""
Minimal document store used by the dashboard.

Collections hold JSON-compatible documents keyed by string ids. Two backends are
provided: an in-memory store (tests, throwaway sessions) and a directory of JSON files,
one file per collection.
"""

import copy
import json
import logging
import os
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from config import STORE_DIR

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class StorageError(RuntimeError):
    """Raised when the backing store cannot be read or written."""


class DocumentStore:
    """Collection/document API shared by the backends.

    Writes reload the whole collection, so backends hold ``self._lock`` around each
    load-modify-save.
    """

    def _load(self, collection: str) -> Dict[str, Document]:
        raise NotImplementedError

    def _save(self, collection: str, docs: Dict[str, Document]) -> None:
        raise NotImplementedError

    def collections(self) -> List[str]:
        raise NotImplementedError

    def add(self, collection: str, data: Document) -> str:
        """Insert a document under a generated id and return the id."""
        doc_id = uuid.uuid4().hex
        with self._lock:
            docs = self._load(collection)
            docs[doc_id] = copy.deepcopy(data)
            self._save(collection, docs)
        logger.info("added document %s/%s", collection, doc_id)
        return doc_id

    def set(self, collection: str, doc_id: str, data: Document) -> None:
        """Create or fully replace a document."""
        with self._lock:
            docs = self._load(collection)
            docs[str(doc_id)] = copy.deepcopy(data)
            self._save(collection, docs)
        logger.info("set document %s/%s", collection, doc_id)

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        doc = self._load(collection).get(str(doc_id))
        return copy.deepcopy(doc) if doc is not None else None

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            docs = self._load(collection)
            if str(doc_id) not in docs:
                return False
            del docs[str(doc_id)]
            self._save(collection, docs)
        logger.info("deleted document %s/%s", collection, doc_id)
        return True

    def stream(self, collection: str, order_by: Optional[str] = None) -> Iterator[Tuple[str, Document]]:
        """Yield (id, document) pairs, optionally ordered by a field.

        Documents missing the field sort last.
        """
        items = list(self._load(collection).items())
        if order_by is not None:
            items.sort(key=lambda kv: (order_by not in kv[1], kv[1].get(order_by, 0)))
        for doc_id, doc in items:
            yield doc_id, copy.deepcopy(doc)

    def documents(self, collection: str, order_by: Optional[str] = None) -> List[Document]:
        return [doc for _, doc in self.stream(collection, order_by=order_by)]

    def is_empty(self, collection: str) -> bool:
        return not self._load(collection)


class MemoryDocumentStore(DocumentStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._data: Dict[str, Dict[str, Document]] = {}

    def _load(self, collection: str) -> Dict[str, Document]:
        return dict(self._data.get(collection, {}))

    def _save(self, collection: str, docs: Dict[str, Document]) -> None:
        self._data[collection] = docs

    def collections(self) -> List[str]:
        return sorted(self._data)


class JsonDocumentStore(DocumentStore):
    """One ``<collection>.json`` file per collection under ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._lock = threading.Lock()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create store directory {self.root}: {e}") from e

    def _path(self, collection: str) -> Path:
        if not collection or "/" in collection or collection.startswith("."):
            raise StorageError(f"Invalid collection name: {collection!r}")
        return self.root / f"{collection}.json"

    def _load(self, collection: str) -> Dict[str, Document]:
        path = self._path(collection)
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Corrupt collection file {path}")
        return data

    def _save(self, collection: str, docs: Dict[str, Document]) -> None:
        path = self._path(collection)
        # Write to a sibling temp file, then swap it in
        fd, tmp_name = tempfile.mkstemp(prefix=f".{collection}.", suffix=".tmp", dir=str(self.root))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(docs, fh, ensure_ascii=False, indent=1, default=str)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise StorageError(f"Failed to write {path}: {e}") from e

    def collections(self) -> List[str]:
        return sorted(p.stem for p in self.root.glob("*.json"))


def open_store(root: Optional[Path] = None) -> DocumentStore:
    """Open the JSON store configured by EMIGRATION_STORE_DIR (or ``root``)."""
    store = JsonDocumentStore(root or STORE_DIR)
    logger.info("using document store at %s", store.root)
    return store
