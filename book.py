from __future__ import annotations


class Author:
    """Represents a book author. Only what the catalog pages display."""

    def __init__(self, first_name: str, family_name: str, id: str | None = None) -> None:
        self.id = id
        self.first_name = first_name.strip()
        self.family_name = family_name.strip()

    @property
    def name(self) -> str:
        if self.first_name and self.family_name:
            return f"{self.family_name}, {self.first_name}"
        return self.family_name or self.first_name

    @property
    def url(self) -> str:
        return f"/catalog/author/{self.id}"

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return self.name

    def to_dict(self) -> dict:
        return {"id": self.id, "first_name": self.first_name, "family_name": self.family_name}

    @staticmethod
    def from_dict(data: dict) -> "Author":
        return Author(first_name=data["first_name"], family_name=data["family_name"], id=data.get("id"))


class Book:
    """Represents a single book title in the catalog."""

    def __init__(self, title: str, author_id: str, summary: str = "", isbn: str = "",
                 id: str | None = None, author: Author | None = None,
                 genre_ids: list | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.author_id = author_id
        self.summary = summary or ""
        self.isbn = (isbn or "").strip()
        # Populated only when the query joins the authors table
        self.author = author
        self.genre_ids = genre_ids or []

    @property
    def url(self) -> str:
        return f"/catalog/book/{self.id}"

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return self.title

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author_id": self.author_id,
            "summary": self.summary,
            "isbn": self.isbn,
            "author": self.author.to_dict() if self.author else None,
            "genre_ids": self.genre_ids,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        author = None
        # Rows joined with authors carry the author's columns under author_* keys
        if data.get("author_first_name") is not None or data.get("author_family_name") is not None:
            author = Author(
                first_name=data.get("author_first_name") or "",
                family_name=data.get("author_family_name") or "",
                id=data.get("author_id"),
            )
        return Book(
            title=data["title"],
            author_id=data.get("author_id", ""),
            summary=data.get("summary") or "",
            isbn=data.get("isbn") or "",
            id=data.get("id"),
            author=author,
        )
