"""
FastAPI main application for the Library API.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from library_api.config import APIConfig, config as default_config
from library_api.models import Book, ErrorResponse
from library_api.service import BookNotFoundError, BookService, BookValidationError
from library_api.store import BookStore, StoreCorruptedError
from utilities.logger import RequestLogger

# Setup logging
logger = structlog.get_logger(__name__)

NOT_FOUND_RESPONSE = {404: {"model": ErrorResponse, "description": "The book was not found"}}
BAD_REQUEST_RESPONSE = {400: {"model": ErrorResponse, "description": "Missing or invalid book fields"}}
SERVER_ERROR_RESPONSE = {500: {"model": ErrorResponse, "description": "Server Error"}}


def get_book_service(request: Request) -> BookService:
    """Book service owned by the running application."""
    service = getattr(request.app.state, "book_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Book store not available"
        )
    return service


router = APIRouter(prefix="/books", tags=["Books"])


@router.get("", response_model=List[Book], summary="Returns the list of all the books")
async def list_books(service: BookService = Depends(get_book_service)):
    """The list of the books, in the order they were created."""
    return service.list_books()


@router.get(
    "/{book_id}",
    response_model=Book,
    responses=NOT_FOUND_RESPONSE,
    summary="Get the book by id"
)
async def get_book(book_id: str, service: BookService = Depends(get_book_service)):
    """
    Get a single book by ID.

    - **book_id**: The book id
    """
    try:
        return service.get_book(book_id)
    except BookNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "",
    response_model=Book,
    responses={**BAD_REQUEST_RESPONSE, **SERVER_ERROR_RESPONSE},
    summary="Create a new book"
)
async def create_book(
    payload: Dict[str, Any] = Body(
        ...,
        examples=[{"title": "The New Turing Omnibus", "author": "Alexander K. Dewdney"}]
    ),
    service: BookService = Depends(get_book_service)
):
    """
    Create a book. `title` and `author` are required; any other fields are
    stored with the book. The id is always generated.
    """
    try:
        return service.create_book(payload)
    except BookValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("Failed to create book", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create book: {str(e)}"
        )


@router.put(
    "/{book_id}",
    response_model=Book,
    responses={**BAD_REQUEST_RESPONSE, **NOT_FOUND_RESPONSE, **SERVER_ERROR_RESPONSE},
    summary="Update the book by id"
)
async def update_book(
    book_id: str,
    payload: Dict[str, Any] = Body(..., examples=[{"author": "A. K. Dewdney"}]),
    service: BookService = Depends(get_book_service)
):
    """
    Update fields of a book. Fields not in the request body are left unchanged.

    - **book_id**: The book id
    """
    try:
        return service.update_book(book_id, payload)
    except BookValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except BookNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error("Failed to update book", book_id=book_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update book: {str(e)}"
        )


@router.delete(
    "/{book_id}",
    response_class=Response,
    responses={200: {"description": "The book was deleted"}, **SERVER_ERROR_RESPONSE},
    summary="Remove the book by id"
)
async def delete_book(book_id: str, service: BookService = Depends(get_book_service)):
    """
    Delete a book. Deleting an unknown id is not an error.

    - **book_id**: The book id
    """
    try:
        service.delete_book(book_id)
    except Exception as e:
        logger.error("Failed to delete book", book_id=book_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete book: {str(e)}"
        )
    return Response(status_code=status.HTTP_200_OK)


def create_app(settings: Optional[APIConfig] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: API configuration, defaults to the environment-backed config

    Returns:
        Application whose lifespan loads the book store from the data file
    """
    settings = settings or default_config
    request_logger = RequestLogger()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        # Startup
        logger.info("Starting Library API", data_file=settings.data_file, port=settings.port)

        store = BookStore(settings.get_data_file_path())
        try:
            store.load_all()
        except StoreCorruptedError as e:
            logger.error("Failed to load book store", error=str(e))
            raise

        app.state.book_service = BookService(store)

        yield

        # Shutdown
        logger.info("Shutting down Library API")
        app.state.book_service = None

    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        docs_url=settings.docs_url,
        servers=[{"url": settings.get_server_url()}],
        openapi_tags=[{"name": "Books", "description": "The books managing API"}],
        lifespan=lifespan
    )
    app.state.config = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = request_logger.start_timer()
        try:
            response = await call_next(request)
        except Exception as e:
            request_logger.log_failure(request.method, request.url.path, str(e))
            raise
        request_logger.log_request(request.method, request.url.path, response.status_code, started)
        return response

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=str(exc.detail),
                status_code=exc.status_code
            ).model_dump(),
            headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle malformed requests."""
        detail = "; ".join(
            f"{'.'.join(str(p) for p in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ErrorResponse(
                error="Invalid request",
                detail=detail,
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
            ).model_dump()
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="Internal server error",
                detail=str(exc) if settings.debug else None,
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
            ).model_dump()
        )

    app.include_router(router)
    return app


app = create_app()

