import json
import logging
import sqlite3
from datetime import date
from typing import List, Optional, Dict, Any, Tuple

import database
from book import Author, Book
from bookinstance import BookInstance
from database import get_db_connection, initialize_database, new_id
from genre import Genre
from utils.validators import FormValidator, bookinstance_form, genre_form

logger = logging.getLogger(__name__)

_BOOK_WITH_AUTHOR = """
    SELECT b.id, b.title, b.author_id, b.summary, b.isbn,
           a.first_name AS author_first_name, a.family_name AS author_family_name
    FROM books b
    JOIN authors a ON a.id = b.author_id
"""

_INSTANCE_WITH_BOOK = """
    SELECT i.id, i.book_id, i.imprint, i.status, i.due_back,
           b.title AS book_title, b.author_id AS book_author_id
    FROM book_instances i
    JOIN books b ON b.id = i.book_id
"""


class Library:
    """Catalog store: genres, books and book instances persisted in SQLite.

    Every method opens its own connection, so the methods can be called from
    worker threads. Lookups return ``None`` for missing records instead of
    raising.
    """

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file or database.DATABASE_FILE
        initialize_database(self.db_file)

    def _connect(self):
        return get_db_connection(self.db_file)

    # ------------------------- Genres ------------------------- #
    def list_genres(self) -> List[Genre]:
        """All genres, sorted by name."""
        conn = self._connect()
        try:
            rows = conn.execute("SELECT id, name FROM genres ORDER BY name").fetchall()
            return [Genre.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def find_genre(self, genre_id: str) -> Optional[Genre]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT id, name FROM genres WHERE id = ?", (genre_id,)).fetchone()
            return Genre.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def find_genre_by_name(self, name: str) -> Optional[Genre]:
        """Case-insensitive exact match on the genre name."""
        conn = self._connect()
        try:
            return self._select_genre_by_name(conn, name)
        finally:
            conn.close()

    def add_genre(self, genre: Genre) -> Genre:
        """Insert a new genre, assigning its id."""
        genre.id = genre.id or new_id()
        conn = self._connect()
        try:
            self._insert_genre(conn, genre)
            conn.commit()
        finally:
            conn.close()
        return genre

    def upsert_genre(self, genre: Genre) -> Genre:
        """Create or overwrite the genre stored under ``genre.id``."""
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO genres (id, name) VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET name = excluded.name
                """,
                (genre.id, genre.name),
            )
            conn.commit()
        finally:
            conn.close()
        return genre

    def remove_genre(self, genre_id: str) -> bool:
        conn = self._connect()
        try:
            cursor = conn.execute("DELETE FROM genres WHERE id = ?", (genre_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def books_in_genre(self, genre_id: str) -> List[Book]:
        """Books filed under the genre, each with its author resolved."""
        conn = self._connect()
        try:
            rows = conn.execute(
                _BOOK_WITH_AUTHOR
                + """
                JOIN book_genres bg ON bg.book_id = b.id
                WHERE bg.genre_id = ?
                ORDER BY b.title
                """,
                (genre_id,),
            ).fetchall()
            return [Book.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    # ------------------------- Authors & books ------------------------- #
    def add_author(self, author: Author) -> Author:
        author.id = author.id or new_id()
        conn = self._connect()
        try:
            self._insert_author(conn, author)
            conn.commit()
        finally:
            conn.close()
        return author

    def add_book(self, book: Book) -> Book:
        """Insert a book together with its genre links."""
        book.id = book.id or new_id()
        conn = self._connect()
        try:
            self._insert_book(conn, book)
            conn.commit()
        finally:
            conn.close()
        return book

    def find_book(self, book_id: str) -> Optional[Book]:
        conn = self._connect()
        try:
            row = conn.execute(_BOOK_WITH_AUTHOR + " WHERE b.id = ?", (book_id,)).fetchone()
            return Book.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def list_book_titles(self) -> List[Book]:
        """Every book with only id and title loaded, sorted by title."""
        conn = self._connect()
        try:
            rows = conn.execute("SELECT id, title, author_id FROM books ORDER BY title").fetchall()
            return [Book.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    # ------------------------- Book instances ------------------------- #
    def list_instances(self) -> List[BookInstance]:
        """All book instances with their book resolved."""
        conn = self._connect()
        try:
            rows = conn.execute(_INSTANCE_WITH_BOOK + " ORDER BY b.title, i.imprint").fetchall()
            return [BookInstance.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def find_instance(self, instance_id: str) -> Optional[BookInstance]:
        conn = self._connect()
        try:
            row = conn.execute(_INSTANCE_WITH_BOOK + " WHERE i.id = ?", (instance_id,)).fetchone()
            return BookInstance.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def add_instance(self, instance: BookInstance) -> BookInstance:
        instance.id = instance.id or new_id()
        conn = self._connect()
        try:
            self._insert_instance(conn, instance)
            conn.commit()
        finally:
            conn.close()
        return instance

    def upsert_instance(self, instance: BookInstance) -> BookInstance:
        """Create or overwrite the book instance stored under ``instance.id``."""
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO book_instances (id, book_id, imprint, status, due_back)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    book_id = excluded.book_id,
                    imprint = excluded.imprint,
                    status = excluded.status,
                    due_back = excluded.due_back
                """,
                (instance.id, instance.book_id, instance.imprint, instance.status,
                 self._date_to_text(instance.due_back)),
            )
            conn.commit()
        finally:
            conn.close()
        return instance

    def remove_instance(self, instance_id: str) -> bool:
        conn = self._connect()
        try:
            cursor = conn.execute("DELETE FROM book_instances WHERE id = ?", (instance_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ------------------------- Statistics & import ------------------------- #
    def get_statistics(self) -> Dict[str, Any]:
        """Record counts shown on the catalog home page."""
        conn = self._connect()
        try:
            cursor = conn.cursor()
            stats = {}
            for key, table in (("books", "books"), ("authors", "authors"),
                               ("genres", "genres"), ("book_instances", "book_instances")):
                cursor.execute(f"SELECT COUNT(*) FROM {table}")
                stats[key] = cursor.fetchone()[0]
            cursor.execute("SELECT COUNT(*) FROM book_instances WHERE status = 'Available'")
            stats["book_instances_available"] = cursor.fetchone()[0]
            return stats
        finally:
            conn.close()

    def import_json(self, path: str) -> Dict[str, int]:
        """Seed the catalog from a JSON fixture.

        Layout: ``genres`` (names), ``authors`` (``key``, ``first_name``,
        ``family_name``), ``books`` (``key``, ``title``, ``author`` key,
        ``summary``, ``isbn``, ``genres`` names) and ``bookinstances``
        (``book`` key, ``imprint``, ``status``, ``due_back``). Genre names
        that already exist (case-insensitively) are reused.

        Genres and instances go through the same form rules as the web UI.
        The whole fixture is checked before anything is written, and it is
        written in a single transaction: an invalid entry raises
        ``ValueError`` and an unknown key raises ``KeyError``, with nothing
        stored either way.
        """

        with open(path, "r", encoding="utf-8") as f:
            data: Dict[str, Any] = json.load(f)

        genre_names: List[Tuple[str, str]] = []
        for raw_name in data.get("genres", []):
            values = self._validated(genre_form, {"name": raw_name}, "genre")
            genre_names.append((raw_name, values["name"]))
        known_genres = {raw_name for raw_name, _ in genre_names}

        authors: Dict[str, Author] = {}
        for item in data.get("authors", []):
            authors[item["key"]] = Author(item["first_name"], item["family_name"], id=new_id())

        books: Dict[str, Book] = {}
        book_genres: Dict[str, List[str]] = {}
        for item in data.get("books", []):
            names = list(item.get("genres", []))
            for name in names:
                if name not in known_genres:
                    raise KeyError(name)
            books[item["key"]] = Book(
                title=item["title"],
                author_id=authors[item["author"]].id,
                summary=item.get("summary", ""),
                isbn=item.get("isbn", ""),
                id=new_id(),
            )
            book_genres[item["key"]] = names

        instances: List[BookInstance] = []
        for item in data.get("bookinstances", []):
            values = self._validated(bookinstance_form, item, "book instance")
            instances.append(BookInstance(
                book_id=books[item["book"]].id,
                imprint=values["imprint"],
                status=values["status"],
                due_back=values["due_back"],
                id=new_id(),
            ))

        counts = {"genres": 0, "authors": len(authors), "books": len(books), "bookinstances": len(instances)}

        conn = self._connect()
        try:
            genre_ids: Dict[str, str] = {}
            for raw_name, name in genre_names:
                genre = self._select_genre_by_name(conn, name)
                if genre is None:
                    genre = Genre(name=name, id=new_id())
                    self._insert_genre(conn, genre)
                    counts["genres"] += 1
                genre_ids[raw_name] = genre.id

            for author in authors.values():
                self._insert_author(conn, author)
            for key, book in books.items():
                book.genre_ids = [genre_ids[name] for name in book_genres[key]]
                self._insert_book(conn, book)
            for instance in instances:
                self._insert_instance(conn, instance)
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.info(f"Imported catalog fixture {path}: {counts}")
        return counts

    # ------------------------- Utilities ------------------------- #
    @staticmethod
    def _validated(form: FormValidator, data: Dict[str, Any], kind: str) -> Dict[str, Any]:
        result = form.validate(data)
        if not result.is_valid:
            error = result.errors[0]
            raise ValueError(f"Invalid {kind} {error.field} {error.value!r}: {error.message}")
        return result.values

    @staticmethod
    def _select_genre_by_name(conn: sqlite3.Connection, name: str) -> Optional[Genre]:
        row = conn.execute(
            "SELECT id, name FROM genres WHERE name = ? COLLATE CASEFOLD LIMIT 1", (name,)
        ).fetchone()
        return Genre.from_dict(dict(row)) if row else None

    @staticmethod
    def _insert_genre(conn: sqlite3.Connection, genre: Genre) -> None:
        conn.execute("INSERT INTO genres (id, name) VALUES (?, ?)", (genre.id, genre.name))

    @staticmethod
    def _insert_author(conn: sqlite3.Connection, author: Author) -> None:
        conn.execute(
            "INSERT INTO authors (id, first_name, family_name) VALUES (?, ?, ?)",
            (author.id, author.first_name, author.family_name),
        )

    @staticmethod
    def _insert_book(conn: sqlite3.Connection, book: Book) -> None:
        conn.execute(
            "INSERT INTO books (id, title, author_id, summary, isbn) VALUES (?, ?, ?, ?, ?)",
            (book.id, book.title, book.author_id, book.summary, book.isbn),
        )
        conn.executemany(
            "INSERT INTO book_genres (book_id, genre_id) VALUES (?, ?)",
            [(book.id, genre_id) for genre_id in book.genre_ids],
        )

    @classmethod
    def _insert_instance(cls, conn: sqlite3.Connection, instance: BookInstance) -> None:
        conn.execute(
            """
            INSERT INTO book_instances (id, book_id, imprint, status, due_back)
            VALUES (?, ?, ?, ?, ?)
            """,
            (instance.id, instance.book_id, instance.imprint, instance.status,
             cls._date_to_text(instance.due_back)),
        )

    @staticmethod
    def _date_to_text(value: Optional[date]) -> Optional[str]:
        return value.isoformat() if value else None
