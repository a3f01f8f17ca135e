"""
Pytest configuration and shared fixtures.
"""

import pytest
from fastapi.testclient import TestClient

from library_api.config import APIConfig
from library_api.main import create_app
from library_api.service import BookService
from library_api.store import BookStore


@pytest.fixture
def data_file(tmp_path):
    """Path of a data file that does not exist yet."""
    return tmp_path / "db.json"


@pytest.fixture
def book_store(data_file):
    """Create an empty, loaded book store."""
    store = BookStore(data_file)
    store.load_all()
    return store


@pytest.fixture
def book_service(book_store):
    """Create a book service over the test store."""
    return BookService(book_store)


@pytest.fixture
def sample_book_fields():
    """Fields for creating a book."""
    return {
        "title": "The New Turing Omnibus",
        "author": "Alexander K. Dewdney",
    }


@pytest.fixture
def api_config(data_file):
    """API configuration pointing at the test data file."""
    return APIConfig(data_file=str(data_file), port=4004, debug=False)


@pytest.fixture
def client(api_config):
    """Create test client with the application lifespan running."""
    app = create_app(api_config)
    with TestClient(app) as test_client:
        yield test_client
