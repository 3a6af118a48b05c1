"""
FastAPI RESTful API for the Book Catalog.

This package provides a REST API for:
- Book listing, pagination and CRUD
- Author pagination and CRUD with book association
- Admin-only creation and deletion through API key roles
"""
