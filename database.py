import sqlite3
import uuid

from config import settings

# Default database file. LIBRARY_DB_FILE in the environment (or .env) overrides it.
DATABASE_FILE = settings.data_file


def new_id() -> str:
    """Return a fresh opaque record identifier."""
    return uuid.uuid4().hex


def casefold_collation(left: str, right: str) -> int:
    """Compare two strings ignoring case, for any Unicode letter."""
    left, right = left.casefold(), right.casefold()
    return (left > right) - (left < right)


def get_db_connection(db_file: str | None = None) -> sqlite3.Connection:
    """Open a connection to the catalog database.

    Connections are opened per operation, so one may be created inside any
    worker thread. Rows come back as ``sqlite3.Row``, foreign keys are on and
    the ``CASEFOLD`` collation is registered.
    """
    conn = sqlite3.connect(db_file or DATABASE_FILE)
    conn.row_factory = sqlite3.Row
    conn.create_collation("CASEFOLD", casefold_collation)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_tables(db_file: str | None = None) -> None:
    """Creates the catalog tables and indexes if they don't exist."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS genres (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS authors (
                id TEXT PRIMARY KEY,
                first_name TEXT NOT NULL,
                family_name TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                author_id TEXT NOT NULL,
                summary TEXT NOT NULL DEFAULT '',
                isbn TEXT NOT NULL DEFAULT '',
                FOREIGN KEY (author_id) REFERENCES authors(id)
            )
        """)

        # Book <-> Genre link table; a genre with rows here cannot be deleted
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS book_genres (
                book_id TEXT NOT NULL,
                genre_id TEXT NOT NULL,
                PRIMARY KEY (book_id, genre_id),
                FOREIGN KEY (book_id) REFERENCES books(id) ON DELETE CASCADE,
                FOREIGN KEY (genre_id) REFERENCES genres(id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS book_instances (
                id TEXT PRIMARY KEY,
                book_id TEXT NOT NULL,
                imprint TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'Maintenance',
                due_back TEXT,
                FOREIGN KEY (book_id) REFERENCES books(id)
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_genres_name_casefold ON genres(name COLLATE CASEFOLD)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_title ON books(title)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_book_genres_genre_id ON book_genres(genre_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_book_instances_book_id ON book_instances(book_id)")

        conn.commit()
    finally:
        conn.close()


def initialize_database(db_file: str | None = None) -> None:
    """Initializes the database, creating tables if needed."""
    create_tables(db_file)
