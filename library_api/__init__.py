"""
FastAPI REST API for the Library book collection.

This package provides:
- CRUD endpoints for books under /books
- A JSON file datastore for the collection
- Generated OpenAPI documentation served at /api-docs
"""
