import json
import os
from datetime import date

import pytest

from book import Book
from bookinstance import BookInstance
from genre import Genre
from library import Library

FIXTURE = os.path.join(os.path.dirname(__file__), "fixtures", "catalog.json")


def test_add_list_and_find_genres(lib):
    assert lib.list_genres() == []

    poetry = lib.add_genre(Genre(name="Poetry"))
    lib.add_genre(Genre(name="Fantasy"))

    assert poetry.id
    assert [g.name for g in lib.list_genres()] == ["Fantasy", "Poetry"]
    assert lib.find_genre(poetry.id).name == "Poetry"
    assert lib.find_genre("missing") is None


def test_find_genre_by_name_ignores_case(lib):
    genre = lib.add_genre(Genre(name="Sci-Fi"))

    assert lib.find_genre_by_name("sci-fi").id == genre.id
    assert lib.find_genre_by_name("SCI-FI").id == genre.id
    assert lib.find_genre_by_name("Sci") is None


def test_upsert_genre_overwrites_and_creates(lib):
    genre = lib.add_genre(Genre(name="Old Name"))

    lib.upsert_genre(Genre(name="New Name", id=genre.id))
    assert lib.find_genre(genre.id).name == "New Name"
    assert len(lib.list_genres()) == 1

    lib.upsert_genre(Genre(name="Brand New", id="fixed-id"))
    assert lib.find_genre("fixed-id").name == "Brand New"


def test_remove_genre(lib):
    genre = lib.add_genre(Genre(name="Horror"))
    assert lib.remove_genre(genre.id) is True
    assert lib.remove_genre(genre.id) is False


def test_books_in_genre_resolves_author(lib, make_book):
    fantasy = lib.add_genre(Genre(name="Fantasy"))
    other = lib.add_genre(Genre(name="Other"))
    make_book("The Wise Man's Fear", [fantasy.id])
    make_book("The Name of the Wind", [fantasy.id, other.id])
    make_book("Unrelated")

    books = lib.books_in_genre(fantasy.id)
    assert [b.title for b in books] == ["The Name of the Wind", "The Wise Man's Fear"]
    assert books[0].author.name == "Rothfuss, Patrick"
    assert [b.title for b in lib.books_in_genre(other.id)] == ["The Name of the Wind"]


def test_list_book_titles_sorted(lib, make_book):
    make_book("Zebra")
    make_book("Apple")
    assert [b.title for b in lib.list_book_titles()] == ["Apple", "Zebra"]


def test_instances_round_trip_with_book(lib, make_book):
    book = make_book("The Name of the Wind")
    instance = lib.add_instance(BookInstance(book_id=book.id, imprint="Gollancz, 2011.", status="Loaned",
                                             due_back=date(2026, 11, 1)))

    found = lib.find_instance(instance.id)
    assert found.book.title == "The Name of the Wind"
    assert found.due_back == date(2026, 11, 1)
    assert found.due_back_formatted == "Nov 1, 2026"
    assert found.url == f"/catalog/bookinstance/{instance.id}"
    assert [i.id for i in lib.list_instances()] == [instance.id]


def test_upsert_instance(lib, make_book):
    book = make_book("Dune")
    instance = lib.add_instance(BookInstance(book_id=book.id, imprint="Ace, 1990."))
    assert lib.find_instance(instance.id).status == "Maintenance"

    lib.upsert_instance(BookInstance(book_id=book.id, imprint="Ace, 1991.", status="Available", id=instance.id))
    updated = lib.find_instance(instance.id)
    assert updated.imprint == "Ace, 1991."
    assert updated.status == "Available"
    assert updated.due_back is None


def test_remove_instance(lib, make_book):
    book = make_book("Dune")
    instance = lib.add_instance(BookInstance(book_id=book.id, imprint="Ace, 1990."))
    assert lib.remove_instance(instance.id) is True
    assert lib.find_instance(instance.id) is None
    assert lib.remove_instance(instance.id) is False


def test_persistence_across_instances(db_file):
    lib = Library(db_file=db_file)
    genre = lib.add_genre(Genre(name="Poetry"))

    lib2 = Library(db_file=db_file)
    assert lib2.find_genre(genre.id).name == "Poetry"


def test_import_json_and_statistics(lib):
    counts = lib.import_json(FIXTURE)
    assert counts == {"genres": 3, "authors": 2, "books": 2, "bookinstances": 3}

    stats = lib.get_statistics()
    assert stats["books"] == 2
    assert stats["genres"] == 3
    assert stats["book_instances"] == 3
    assert stats["book_instances_available"] == 1

    fantasy = lib.find_genre_by_name("fantasy")
    assert [b.isbn for b in lib.books_in_genre(fantasy.id)] == ["9781473211896"]


def test_import_json_reuses_existing_genres(lib):
    existing = lib.add_genre(Genre(name="FANTASY"))
    counts = lib.import_json(FIXTURE)

    assert counts["genres"] == 2
    assert len(lib.books_in_genre(existing.id)) == 1


def test_book_from_dict_without_author():
    book = Book.from_dict({"id": "b1", "title": "  Dune ", "author_id": "a1"})
    assert book.title == "Dune"
    assert book.author is None
    assert book.url == "/catalog/book/b1"


def test_find_genre_by_name_folds_non_ascii_case(lib):
    genre = lib.add_genre(Genre(name="Épopée"))

    assert lib.find_genre_by_name("épopée").id == genre.id
    assert lib.find_genre_by_name("ÉPOPÉE").id == genre.id
    assert lib.find_genre_by_name("Epopee") is None


def _write_fixture(tmp_path, data):
    path = tmp_path / "fixture.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def _catalog(**overrides):
    data = {
        "genres": ["Fantasy"],
        "authors": [{"key": "rothfuss", "first_name": "Patrick", "family_name": "Rothfuss"}],
        "books": [{"key": "wind", "title": "The Name of the Wind", "author": "rothfuss", "genres": ["Fantasy"]}],
        "bookinstances": [{"book": "wind", "imprint": "Gollancz, 2011.", "status": "Available"}],
    }
    data.update(overrides)
    return data


def _assert_empty(lib):
    stats = lib.get_statistics()
    assert stats["genres"] == stats["authors"] == stats["books"] == stats["book_instances"] == 0


@pytest.mark.parametrize("overrides", [
    {"genres": ["Fantasy", "ab"]},
    {"bookinstances": [{"book": "wind", "imprint": "   ", "status": "Available"}]},
    {"bookinstances": [{"book": "wind", "imprint": "Gollancz, 2011.", "status": "Lost"}]},
    {"bookinstances": [{"book": "wind", "imprint": "Gollancz, 2011.", "due_back": "31/12/2026"}]},
])
def test_import_json_rejects_invalid_entries(lib, tmp_path, overrides):
    path = _write_fixture(tmp_path, _catalog(**overrides))

    with pytest.raises(ValueError):
        lib.import_json(path)
    _assert_empty(lib)


@pytest.mark.parametrize("overrides", [
    {"books": [{"key": "wind", "title": "The Name of the Wind", "author": "nobody"}]},
    {"books": [{"key": "wind", "title": "The Name of the Wind", "author": "rothfuss", "genres": ["Horror"]}]},
    {"bookinstances": [{"book": "missing", "imprint": "Gollancz, 2011."}]},
])
def test_import_json_unknown_keys_write_nothing(lib, tmp_path, overrides):
    path = _write_fixture(tmp_path, _catalog(**overrides))

    with pytest.raises(KeyError):
        lib.import_json(path)
    _assert_empty(lib)


def test_import_json_normalizes_like_the_forms(lib, tmp_path):
    path = _write_fixture(tmp_path, _catalog(
        genres=["  Fantasy  "],
        books=[{"key": "wind", "title": "The Name of the Wind", "author": "rothfuss", "genres": ["  Fantasy  "]}],
        bookinstances=[{"book": "wind", "imprint": " Tor & Co ", "status": ""}],
    ))
    lib.import_json(path)

    assert [g.name for g in lib.list_genres()] == ["Fantasy"]
    instance = lib.list_instances()[0]
    assert instance.imprint == "Tor &amp; Co"
    assert instance.status == "Maintenance"
