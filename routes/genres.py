import asyncio
import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Request

from genre import Genre
from library import Library
from routes.common import get_library, redirect, render
from utils.validators import genre_form

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog")

GENRE_LIST_URL = "/catalog/genres"


@router.get("/genres")
async def genre_list(request: Request, library: Library = Depends(get_library)):
    """All genres, sorted by name."""
    genres = await asyncio.to_thread(library.list_genres)
    return render(request, "genre_list.html", title="Genre list", genres=genres)


@router.get("/genre/create")
async def genre_create_get(request: Request):
    return render(request, "genre_form.html", title="Create Genre")


@router.post("/genre/create")
async def genre_create_post(
    request: Request,
    name: str = Form(default=""),
    library: Library = Depends(get_library),
):
    """Create a genre unless one with the same name (ignoring case) exists."""
    result = genre_form.validate({"name": name})
    genre = Genre(name=result.values["name"])

    if not result.is_valid:
        return render(request, "genre_form.html", title="Create Genre", genre=genre, errors=result.errors)

    existing = await asyncio.to_thread(library.find_genre_by_name, genre.name)
    if existing:
        return redirect(existing.url)

    await asyncio.to_thread(library.add_genre, genre)
    logger.info(f"Created genre {genre.id} ({genre.name})")
    return redirect(genre.url)


@router.get("/genre/{genre_id}/delete")
async def genre_delete_get(request: Request, genre_id: str, library: Library = Depends(get_library)):
    genre, genre_books = await asyncio.gather(
        asyncio.to_thread(library.find_genre, genre_id),
        asyncio.to_thread(library.books_in_genre, genre_id),
    )
    if genre is None:
        return redirect(GENRE_LIST_URL)

    return render(request, "genre_delete.html", title="Delete genre", genre=genre, genre_books=genre_books)


@router.post("/genre/{genre_id}/delete")
async def genre_delete_post(request: Request, genre_id: str, library: Library = Depends(get_library)):
    """Delete the genre, or show the books that still reference it."""
    genre, genre_books = await asyncio.gather(
        asyncio.to_thread(library.find_genre, genre_id),
        asyncio.to_thread(library.books_in_genre, genre_id),
    )
    if genre is None:
        return redirect(GENRE_LIST_URL)

    if genre_books:
        logger.info(f"Refused to delete genre {genre_id}: {len(genre_books)} book(s) still reference it")
        return render(request, "genre_delete.html", title="Delete genre", genre=genre, genre_books=genre_books)

    await asyncio.to_thread(library.remove_genre, genre_id)
    logger.info(f"Deleted genre {genre_id}")
    return redirect(GENRE_LIST_URL)


@router.get("/genre/{genre_id}/update")
async def genre_update_get(request: Request, genre_id: str, library: Library = Depends(get_library)):
    genre = await asyncio.to_thread(library.find_genre, genre_id)
    if genre is None:
        return redirect(GENRE_LIST_URL)

    return render(request, "genre_form.html", title="Update Genre", genre=genre)


@router.post("/genre/{genre_id}/update")
async def genre_update_post(
    request: Request,
    genre_id: str,
    name: str = Form(default=""),
    library: Library = Depends(get_library),
):
    result = genre_form.validate({"name": name})
    genre = Genre(name=result.values["name"], id=genre_id)

    if not result.is_valid:
        return render(request, "genre_form.html", title="Update Genre", genre=genre, errors=result.errors)

    await asyncio.to_thread(library.upsert_genre, genre)
    logger.info(f"Updated genre {genre.id} ({genre.name})")
    return redirect(genre.url)


@router.get("/genre/{genre_id}")
async def genre_detail(request: Request, genre_id: str, library: Library = Depends(get_library)):
    """A genre and the books filed under it."""
    genre, genre_books = await asyncio.gather(
        asyncio.to_thread(library.find_genre, genre_id),
        asyncio.to_thread(library.books_in_genre, genre_id),
    )
    if genre is None:
        raise HTTPException(status_code=404, detail="Genre not found")

    return render(request, "genre_detail.html", title="Genre Detail", genre=genre, genre_books=genre_books)
