import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from finhub.config import CORS_ORIGINS, LOG_LEVEL
from finhub.logging_config import setup_logging
from finhub.routers import ar_invoices, braintree, csv_imports, csv_rows, pages, reports, web_orders, workstream
from finhub.store import RowStoreError


logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def register_error_handlers(app: FastAPI) -> None:
    """Render every error as ``{success: false, error}``."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
        )
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid request: {problems}")

    @app.exception_handler(RowStoreError)
    async def row_store_error(request: Request, exc: RowStoreError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.user_message)


def create_app() -> FastAPI:
    setup_logging(LOG_LEVEL)

    app = FastAPI(
        title="finhub – Finance Operations Backend",
        description="CSV/XLSX imports, receivables and revenue reports, data freshness and workstream reads.",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    # Imports
    app.include_router(csv_imports.router, prefix="/api/csv", tags=["imports"])

    # Reads and reports
    app.include_router(csv_rows.router, prefix="/api/csv-rows", tags=["csv-rows"])
    app.include_router(ar_invoices.router, prefix="/api/ar-invoices", tags=["ar-invoices"])
    app.include_router(reports.router, prefix="/api", tags=["reports"])
    app.include_router(braintree.router, prefix="/api/braintree", tags=["braintree"])
    app.include_router(web_orders.router, prefix="/api/web-orders", tags=["web-orders"])
    app.include_router(workstream.router, prefix="/api/workstream", tags=["workstream"])

    # Pages
    app.include_router(pages.router, tags=["pages"])

    return app


app = create_app()
