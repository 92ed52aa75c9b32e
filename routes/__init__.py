"""Local Library - catalog route handlers

- Genre pages and forms (genres.py)
- Book instance pages and forms (bookinstances.py)
"""

from routes.bookinstances import router as bookinstance_router
from routes.genres import router as genre_router

__all__ = ["genre_router", "bookinstance_router"]
