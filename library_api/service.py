"""
Book service layer for the FastAPI application.
"""

import secrets
import string
from typing import Any, Dict, List

import structlog
from pydantic import ValidationError

from library_api.models import Book, BookCreate
from library_api.store import BookStore, encode_collection

logger = structlog.get_logger(__name__)

# URL-safe alphabet used for book ids
ID_ALPHABET = string.ascii_letters + string.digits + "_-"
ID_LENGTH = 8


class BookServiceError(Exception):
    """Base class for book service errors."""


class BookNotFoundError(BookServiceError):
    """No book matches the requested id."""

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Book with ID '{book_id}' not found")


class BookValidationError(BookServiceError):
    """Request fields do not describe a valid book."""


def generate_book_id(length: int = ID_LENGTH) -> str:
    """Generate a random URL-safe book id."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def _ensure_encodable(fields: Dict[str, Any]) -> None:
    try:
        encode_collection([fields])
    except (TypeError, ValueError) as e:
        raise BookValidationError(f"Book fields must be valid UTF-8 JSON: {e}") from e


def _validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"])
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class BookService:
    """Validates book requests and delegates to the store."""

    def __init__(self, store: BookStore):
        self.store = store

    def list_books(self) -> List[Book]:
        """Get all books in creation order."""
        return [Book(**book) for book in self.store.get_all()]

    def get_book(self, book_id: str) -> Book:
        """
        Get a single book by ID.

        Raises:
            BookNotFoundError: if no book has this id
        """
        book = self.store.find_by_id(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        return Book(**book)

    def create_book(self, fields: Dict[str, Any]) -> Book:
        """
        Create a book from the request fields.

        ``title`` and ``author`` are required strings. Any other fields are
        kept as they are; a supplied ``id`` is replaced by a generated one.

        Raises:
            BookValidationError: if required fields are missing or not strings, or
                text cannot be encoded as UTF-8
        """
        try:
            BookCreate.model_validate(fields)
        except ValidationError as e:
            raise BookValidationError(_validation_message(e)) from e
        _ensure_encodable(fields)

        record = {"id": generate_book_id()}
        record.update({k: v for k, v in fields.items() if k != "id"})

        self.store.append(record)
        logger.info("Book created", book_id=record["id"], title=record["title"])
        return Book(**record)

    def update_book(self, book_id: str, patch: Dict[str, Any]) -> Book:
        """
        Merge ``patch`` into an existing book.

        The id of a book never changes; an ``id`` key in the patch is ignored.

        Raises:
            BookValidationError: if title or author is given but not a string, or
                text cannot be encoded as UTF-8
            BookNotFoundError: if no book has this id
        """
        for field_name in ("title", "author"):
            if field_name in patch and not isinstance(patch[field_name], str):
                raise BookValidationError(f"{field_name}: Input should be a valid string")
        _ensure_encodable(patch)

        changes = {k: v for k, v in patch.items() if k != "id"}
        book = self.store.update_by_id(book_id, changes)
        if book is None:
            raise BookNotFoundError(book_id)

        logger.info("Book updated", book_id=book_id, fields=sorted(changes))
        return Book(**book)

    def delete_book(self, book_id: str) -> bool:
        """Delete a book. Returns False when there was nothing to delete."""
        removed = self.store.remove_by_id(book_id)
        logger.info("Book deleted", book_id=book_id, removed=removed)
        return removed
