from .catalog import router as catalog_router
from .categories import router as categories_router
from .public import router as public_router

__all__ = ["catalog_router", "categories_router", "public_router"]
