import pytest
from fastapi.testclient import TestClient

from api import create_app
from book import Author, Book
from library import Library


@pytest.fixture
def db_file(tmp_path):
    # tmp_path is unique per test, so each test gets its own database file
    return str(tmp_path / "catalog.db")


@pytest.fixture
def lib(db_file):
    return Library(db_file=db_file)


@pytest.fixture
def client(db_file):
    # Entering the client runs the lifespan hook, which opens the store on db_file
    with TestClient(create_app(db_file=db_file), follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def author(lib):
    return lib.add_author(Author("Patrick", "Rothfuss"))


@pytest.fixture
def make_book(lib, author):
    def _make(title: str, genre_ids=()) -> Book:
        return lib.add_book(Book(title=title, author_id=author.id, summary=f"About {title}",
                                 genre_ids=list(genre_ids)))
    return _make
