from __future__ import annotations


class Genre:
    """A named category that books are filed under."""

    def __init__(self, name: str, id: str | None = None) -> None:
        self.id = id
        self.name = name

    @property
    def url(self) -> str:
        return f"/catalog/genre/{self.id}"

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return self.name

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    @staticmethod
    def from_dict(data: dict) -> "Genre":
        return Genre(name=data["name"], id=data.get("id"))
