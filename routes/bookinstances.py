import asyncio
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request

from book import Book
from bookinstance import STATUS_CHOICES, BookInstance
from library import Library
from routes.common import get_library, redirect, render
from utils.validators import BOOK_MESSAGE, FormResult, bookinstance_form

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog")

BOOKINSTANCE_LIST_URL = "/catalog/bookinstances"


def _render_form(request: Request, title: str, book_list: List[Book],
                 bookinstance: Optional[BookInstance] = None, errors=None):
    return render(
        request,
        "bookinstance_form.html",
        title=title,
        book_list=book_list,
        selected_book=bookinstance.book_id if bookinstance else None,
        bookinstance=bookinstance,
        status_choices=STATUS_CHOICES,
        errors=errors or [],
    )


async def _validate(library: Library, data: dict) -> tuple[BookInstance, FormResult]:
    """Run the form rules and build the (unsaved) instance they describe.

    A book id that names no stored book is reported like a missing one.
    """
    result = bookinstance_form.validate(data)
    book_id = result.values["book"]
    if result.error_for("book") is None:
        if await asyncio.to_thread(library.find_book, book_id) is None:
            result.add_error("book", BOOK_MESSAGE)

    due_back = result.values["due_back"]
    instance = BookInstance(
        book_id=book_id,
        imprint=result.values["imprint"],
        status=result.values["status"],
        due_back=due_back if isinstance(due_back, date) else None,
    )
    return instance, result


@router.get("/bookinstances")
async def bookinstance_list(request: Request, library: Library = Depends(get_library)):
    """Every copy, with its book title resolved."""
    instances = await asyncio.to_thread(library.list_instances)
    return render(request, "bookinstance_list.html", title="Book Instance List", bookinstance_list=instances)


@router.get("/bookinstance/create")
async def bookinstance_create_get(request: Request, library: Library = Depends(get_library)):
    book_list = await asyncio.to_thread(library.list_book_titles)
    return _render_form(request, "Create BookInstance", book_list)


@router.post("/bookinstance/create")
async def bookinstance_create_post(
    request: Request,
    book: str = Form(default=""),
    imprint: str = Form(default=""),
    status: str = Form(default=""),
    due_back: str = Form(default=""),
    library: Library = Depends(get_library),
):
    instance, result = await _validate(
        library, {"book": book, "imprint": imprint, "status": status, "due_back": due_back}
    )

    if not result.is_valid:
        book_list = await asyncio.to_thread(library.list_book_titles)
        return _render_form(request, "Create BookInstance", book_list, instance, result.errors)

    await asyncio.to_thread(library.add_instance, instance)
    logger.info(f"Created book instance {instance.id} of book {instance.book_id}")
    return redirect(instance.url)


@router.get("/bookinstance/{instance_id}/delete")
async def bookinstance_delete_get(request: Request, instance_id: str, library: Library = Depends(get_library)):
    instance = await asyncio.to_thread(library.find_instance, instance_id)
    if instance is None:
        raise HTTPException(status_code=404, detail="Book copy not found")

    return render(request, "bookinstance_delete.html", title="Delete book instance", bookinstance=instance)


@router.post("/bookinstance/{instance_id}/delete")
async def bookinstance_delete_post(request: Request, instance_id: str, library: Library = Depends(get_library)):
    """Delete the copy; a copy that is already gone just goes back to the list."""
    instance = await asyncio.to_thread(library.find_instance, instance_id)
    if instance is None:
        return redirect(BOOKINSTANCE_LIST_URL)

    await asyncio.to_thread(library.remove_instance, instance_id)
    logger.info(f"Deleted book instance {instance_id}")
    return redirect(BOOKINSTANCE_LIST_URL)


@router.get("/bookinstance/{instance_id}/update")
async def bookinstance_update_get(request: Request, instance_id: str, library: Library = Depends(get_library)):
    instance, book_list = await asyncio.gather(
        asyncio.to_thread(library.find_instance, instance_id),
        asyncio.to_thread(library.list_book_titles),
    )
    if instance is None:
        raise HTTPException(status_code=404, detail="Book copy not found")

    return _render_form(request, "Update book instance", book_list, instance)


@router.post("/bookinstance/{instance_id}/update")
async def bookinstance_update_post(
    request: Request,
    instance_id: str,
    book: str = Form(default=""),
    imprint: str = Form(default=""),
    status: str = Form(default=""),
    due_back: str = Form(default=""),
    library: Library = Depends(get_library),
):
    instance, result = await _validate(
        library, {"book": book, "imprint": imprint, "status": status, "due_back": due_back}
    )
    instance.id = instance_id

    if not result.is_valid:
        book_list = await asyncio.to_thread(library.list_book_titles)
        return _render_form(request, "Update BookInstance", book_list, instance, result.errors)

    await asyncio.to_thread(library.upsert_instance, instance)
    logger.info(f"Updated book instance {instance.id}")
    return redirect(instance.url)


@router.get("/bookinstance/{instance_id}")
async def bookinstance_detail(request: Request, instance_id: str, library: Library = Depends(get_library)):
    instance = await asyncio.to_thread(library.find_instance, instance_id)
    if instance is None:
        raise HTTPException(status_code=404, detail="Book copy not found")

    return render(request, "bookinstance_detail.html", title="Book:", bookinstance=instance)
