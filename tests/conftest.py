"""Shared test fixtures for aiplint."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from aiplint.descriptor import build_model

if TYPE_CHECKING:
    from aiplint.descriptor import DescriptorModel

BOOK = "library.googleapis.com/Book"
PUBLISHER = "library.googleapis.com/Publisher"


def _library_document() -> dict[str, Any]:
    return {
        "path": "library/v1/library.proto",
        "package": "google.example.library.v1",
        "messages": [
            {
                "name": "Publisher",
                "line": 10,
                "resource": {"type": PUBLISHER, "pattern": ["publishers/{publisher}"]},
                "fields": [{"name": "name", "number": 1, "type": "string", "line": 11}],
            },
            {
                "name": "Book",
                "line": 20,
                "resource": {
                    "type": BOOK,
                    "pattern": ["publishers/{publisher}/books/{book}"],
                },
                "fields": [
                    {"name": "name", "number": 1, "type": "string", "line": 21},
                    {"name": "display_name", "number": 2, "type": "string", "line": 22},
                    {
                        "name": "authors",
                        "number": 3,
                        "type": "string",
                        "repeated": True,
                        "line": 23,
                    },
                ],
            },
            {
                "name": "GetBookRequest",
                "line": 30,
                "fields": [
                    {
                        "name": "name",
                        "number": 1,
                        "type": "string",
                        "resource_reference": {"type": BOOK},
                        "line": 31,
                    }
                ],
            },
            {
                "name": "ListBooksRequest",
                "line": 40,
                "fields": [
                    {
                        "name": "parent",
                        "number": 1,
                        "type": "string",
                        "resource_reference": {"child_type": BOOK},
                        "line": 41,
                    },
                    {"name": "page_size", "number": 2, "type": "int32", "line": 42},
                    {"name": "page_token", "number": 3, "type": "string", "line": 43},
                ],
            },
            {
                "name": "ListBooksResponse",
                "line": 50,
                "fields": [
                    {"name": "books", "number": 1, "type": "Book", "repeated": True, "line": 51},
                    {"name": "next_page_token", "number": 2, "type": "string", "line": 52},
                ],
            },
            {
                "name": "AddAuthorRequest",
                "line": 60,
                "fields": [
                    {
                        "name": "book",
                        "number": 1,
                        "type": "string",
                        "resource_reference": {"type": BOOK},
                        "line": 61,
                    },
                    {"name": "author", "number": 2, "type": "string", "line": 62},
                ],
            },
            {"name": "AddAuthorResponse", "line": 70},
        ],
        "services": [
            {
                "name": "Library",
                "line": 80,
                "methods": [
                    {
                        "name": "GetBook",
                        "request": "GetBookRequest",
                        "response": "Book",
                        "http": {"verb": "get", "path": "/v1/{name=publishers/*/books/*}"},
                        "line": 81,
                    },
                    {
                        "name": "ListBooks",
                        "request": "ListBooksRequest",
                        "response": "ListBooksResponse",
                        "http": {"verb": "get", "path": "/v1/{parent=publishers/*}/books"},
                        "line": 82,
                    },
                    {
                        "name": "AddAuthor",
                        "request": "AddAuthorRequest",
                        "response": "AddAuthorResponse",
                        "http": {
                            "verb": "post",
                            "path": "/v1/{book=publishers/*/books/*}:addAuthor",
                            "body": "*",
                        },
                        "line": 83,
                    },
                ],
            }
        ],
    }


@pytest.fixture()
def library_doc() -> dict[str, Any]:
    """A clean library API document that no built-in rule objects to.

    Returned fresh for every test so tests may mutate it.
    """
    return _library_document()


@pytest.fixture()
def library_model(library_doc: dict[str, Any]) -> DescriptorModel:
    return build_model([library_doc])


@pytest.fixture()
def df_book_doc() -> dict[str, Any]:
    """A single declarative-friendly Book resource with no service."""
    return {
        "path": "library/v1/book.proto",
        "package": "google.example.library.v1",
        "messages": [
            {
                "name": "Book",
                "line": 5,
                "resource": {
                    "type": BOOK,
                    "pattern": ["publishers/{publisher}/books/{book}"],
                    "style": ["DECLARATIVE_FRIENDLY"],
                },
                "fields": [{"name": "name", "number": 1, "type": "string", "line": 6}],
            }
        ],
    }
