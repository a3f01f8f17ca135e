"""
API models and schemas for the FastAPI application.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


BOOK_EXAMPLE = {
    "id": "d5fE_asz",
    "title": "The New Turing Omnibus",
    "author": "Alexander K. Dewdney",
}


class Book(BaseModel):
    """
    A book record.

    ``id``, ``title`` and ``author`` are typed; any other attributes supplied
    when the book was created are kept verbatim as extra fields.
    """
    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={"example": BOOK_EXAMPLE},
    )

    id: str = Field(..., description="The auto-generated id of the book")
    title: str = Field(..., description="The book title")
    author: str = Field(..., description="The book author")

    @property
    def extra_fields(self) -> dict:
        """Attributes outside of the typed fields."""
        return dict(self.model_extra or {})


class BookCreate(BaseModel):
    """Fields required to create a book."""
    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={"example": {k: v for k, v in BOOK_EXAMPLE.items() if k != "id"}},
    )

    title: str = Field(..., description="The book title")
    author: str = Field(..., description="The book author")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")
