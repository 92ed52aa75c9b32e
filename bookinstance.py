from __future__ import annotations

from datetime import date

from book import Book

STATUS_CHOICES = ("Available", "Maintenance", "Loaned", "Reserved")
DEFAULT_STATUS = "Maintenance"


class BookInstance:
    """A physical, loanable copy of a book."""

    def __init__(self, book_id: str, imprint: str, status: str = DEFAULT_STATUS,
                 due_back: date | None = None, id: str | None = None,
                 book: Book | None = None) -> None:
        self.id = id
        self.book_id = book_id
        self.imprint = imprint
        self.status = status or DEFAULT_STATUS
        self.due_back = due_back
        # Resolved Book, set when the query joins the books table
        self.book = book

    @property
    def url(self) -> str:
        return f"/catalog/bookinstance/{self.id}"

    @property
    def due_back_formatted(self) -> str:
        """Due date for display, e.g. ``Oct 19, 2026``; empty when unset."""
        if self.due_back is None:
            return ""
        return f"{self.due_back:%b} {self.due_back.day}, {self.due_back.year}"

    @property
    def due_back_yyyy_mm_dd(self) -> str:
        return self.due_back.isoformat() if self.due_back else ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "imprint": self.imprint,
            "status": self.status,
            "due_back": self.due_back.isoformat() if self.due_back else None,
            "book": self.book.to_dict() if self.book else None,
        }

    @staticmethod
    def from_dict(data: dict) -> "BookInstance":
        due_back = data.get("due_back")
        if isinstance(due_back, str):
            due_back = date.fromisoformat(due_back) if due_back else None

        book = None
        if data.get("book_title") is not None:
            book = Book(title=data["book_title"], author_id=data.get("book_author_id") or "",
                        id=data.get("book_id"))

        return BookInstance(
            book_id=data["book_id"],
            imprint=data["imprint"],
            status=data.get("status") or DEFAULT_STATUS,
            due_back=due_back,
            id=data.get("id"),
            book=book,
        )
