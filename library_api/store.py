"""
JSON file datastore for the book collection.

The whole collection lives in memory and is written back to a single JSON
document (``{"books": [...]}``) after every mutation.
"""

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog

logger = structlog.get_logger(__name__)


class StoreError(Exception):
    """Base class for datastore errors."""


class StoreCorruptedError(StoreError):
    """The data file exists but does not hold a valid book collection."""


class StoreWriteError(StoreError):
    """The collection could not be written to the data file."""


REQUIRED_FIELDS = ("id", "title", "author")


def encode_collection(books: List[Dict[str, Any]]) -> bytes:
    """
    Serialize the collection to the UTF-8 bytes of the data file.

    Raises:
        ValueError: if a value cannot be encoded, e.g. a lone surrogate
        TypeError: if a value is not JSON serializable
    """
    return json.dumps({"books": books}, indent=2, ensure_ascii=False).encode("utf-8")


class BookStore:
    """
    File-backed store owning the in-memory book collection.

    Records are plain dicts kept in insertion order. Every mutating call
    holds the store lock across the in-memory change and the flush.
    """

    def __init__(self, data_file: Union[str, Path]):
        """
        Initialize the store.

        Args:
            data_file: Path of the JSON document backing the collection
        """
        self.data_file = Path(data_file)
        self._books: List[Dict[str, Any]] = []
        self._lock = threading.RLock()

    def load_all(self) -> List[Dict[str, Any]]:
        """
        Load the collection from the data file.

        A missing file yields an empty collection.

        Raises:
            StoreCorruptedError: if the file cannot be parsed as a collection
        """
        with self._lock:
            if not self.data_file.exists():
                logger.info("No data file found, starting empty", path=str(self.data_file))
                self._books = []
                return self.get_all()

            try:
                data = json.loads(self.data_file.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.error("Failed to read data file", path=str(self.data_file), error=str(e))
                raise StoreCorruptedError(f"Cannot read {self.data_file}: {e}") from e

            if not isinstance(data, dict):
                raise StoreCorruptedError(f"{self.data_file} must contain a JSON object")

            books = data.get("books", [])
            if not isinstance(books, list) or not all(isinstance(b, dict) for b in books):
                raise StoreCorruptedError(f"'books' in {self.data_file} must be an array of objects")

            for position, book in enumerate(books):
                missing = [k for k in REQUIRED_FIELDS if not isinstance(book.get(k), str)]
                if missing:
                    raise StoreCorruptedError(
                        f"Book {position} in {self.data_file} needs string fields: {', '.join(missing)}"
                    )

            try:
                encode_collection(books)
            except ValueError as e:
                raise StoreCorruptedError(f"{self.data_file} holds text that cannot be encoded: {e}") from e

            self._books = books
            logger.info("Loaded book collection", path=str(self.data_file), count=len(books))
            return self.get_all()

    def get_all(self) -> List[Dict[str, Any]]:
        """Return the collection in insertion order."""
        with self._lock:
            return list(self._books)

    def find_by_id(self, book_id: str) -> Optional[Dict[str, Any]]:
        """Return the first record whose id matches, or None."""
        with self._lock:
            for book in self._books:
                if book.get("id") == book_id:
                    return book
            return None

    def append(self, book: Dict[str, Any]) -> None:
        """Add a record to the end of the collection and flush."""
        with self._lock:
            self._books.append(book)
            self.flush()

    def update_by_id(self, book_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Shallow-merge ``patch`` into the first record with a matching id.

        Returns:
            The updated record, or None if no record matched
        """
        with self._lock:
            book = self.find_by_id(book_id)
            if book is None:
                return None
            book.update(patch)
            self.flush()
            return book

    def remove_by_id(self, book_id: str) -> bool:
        """Remove the first record with a matching id. Returns whether one was removed."""
        with self._lock:
            for index, book in enumerate(self._books):
                if book.get("id") == book_id:
                    del self._books[index]
                    self.flush()
                    return True
            return False

    def flush(self) -> None:
        """
        Rewrite the data file from the in-memory collection.

        The in-memory collection is left as is when the write fails.

        Raises:
            StoreWriteError: if the file cannot be written
        """
        with self._lock:
            tmp_file = self.data_file.with_name(self.data_file.name + ".tmp")
            try:
                payload = encode_collection(self._books)
                self.data_file.parent.mkdir(parents=True, exist_ok=True)
                tmp_file.write_bytes(payload)
                os.replace(tmp_file, self.data_file)
            except (OSError, TypeError, ValueError) as e:
                tmp_file.unlink(missing_ok=True)
                logger.error("Failed to write data file", path=str(self.data_file), error=str(e))
                raise StoreWriteError(f"Cannot write {self.data_file}: {e}") from e

            logger.debug("Flushed book collection", path=str(self.data_file), count=len(self._books))
