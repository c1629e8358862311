"""FastAPI application factory for the catalog backend."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from fastapi import FastAPI

from .. import __version__
from ..catalog.service import CatalogBackend, build_backends
from ..config import AppConfig, get_config
from .middleware import add_error_handlers, install_request_logging
from .routers import catalog_router, categories_router, public_router

__all__ = ["create_app"]

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig | None = None,
    *,
    backends: Mapping[str, CatalogBackend] | None = None,
) -> FastAPI:
    """Return an application serving every catalog kind.

    *backends* defaults to :func:`build_backends` over *config*, which
    creates the schema and the sentinel categories.
    """

    config = config or get_config()
    if backends is None:
        backends = build_backends(config)
    if not backends:
        raise ValueError("At least one catalog backend is required")

    app = FastAPI(title="printcatalog", version=__version__)
    app.state.config = config
    app.state.backends = dict(backends)
    app.state.store = next(iter(backends.values())).store

    install_request_logging(app)
    add_error_handlers(app)

    app.include_router(catalog_router)
    app.include_router(categories_router)
    app.include_router(public_router)

    @app.get("/")
    def root():
        return {"service": "printcatalog", "status": "ok", "kinds": sorted(app.state.backends)}

    logger.info("Catalog API ready for %s", ", ".join(sorted(backends)))
    return app
