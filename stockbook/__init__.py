"""Application wiring for Stockbook.

Importing the package builds the FastAPI app: configuration is loaded, the
database schema is created or upgraded, middleware and routers are attached,
and the ledger's errors are mapped onto HTTP responses.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.errors import register_exception_handlers
from .db.migrate import run_migrations
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

# Importing the SQLAlchemy models registers them with the metadata. Without
# this step ``Base.metadata.create_all`` would not know about our tables.
from .models import batch as _batch  # noqa: F401
from .models import exchange_rate as _exchange_rate  # noqa: F401
from .models import product as _product  # noqa: F401
from .models import sale as _sale  # noqa: F401

from .routers import api_auth as api_auth_router
from .routers import api_batches as api_batches_router
from .routers import api_exchange_rate as api_exchange_rate_router
from .routers import api_inventory as api_inventory_router
from .routers import api_products as api_products_router
from .routers import api_reports as api_reports_router
from .routers import api_sales as api_sales_router

app = FastAPI(title=settings.APP_NAME)

# ---------- DB init/migrations ----------
Base.metadata.create_all(bind=engine)
run_migrations(engine)

# ---------- Middleware ----------
# Added last runs first: request ids wrap everything else.
app.add_middleware(SecurityHeadersMiddleware)
if settings.ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.add_middleware(RequestIdMiddleware)

# ---------- Routers ----------
app.include_router(api_auth_router.router)
app.include_router(api_products_router.router)
app.include_router(api_batches_router.router)
app.include_router(api_sales_router.router)
app.include_router(api_inventory_router.router)
app.include_router(api_reports_router.router)
app.include_router(api_exchange_rate_router.router)

# ---------- Exception handling ----------
register_exception_handlers(app)


__all__ = ["app"]
