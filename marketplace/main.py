# marketplace/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from marketplace.api import include_routers
from marketplace.data.database import Database, bind_task_database
from marketplace.errors import (
    MarketplaceError,
    ValidationError,
    NotFoundError,
    ConflictError,
    PaymentValidationError,
    TransactionFailure,
)
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

# subclasses resolve through their nearest listed base
ERROR_STATUS_CODES: dict[type, int] = {
    ValidationError: 400,
    PaymentValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    TransactionFailure: 500,
}


def status_code_for(exc: MarketplaceError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r} (cause: {exc.__cause__!r})")
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "errorType": type(exc).__name__},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={
            "detail": f"{location}: {message}" if location else message,
            "errorType": "ValidationError",
        },
    )


def create_app(database: Database | None = None) -> FastAPI:
    database = database or Database()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.connect()
        database.create_all()
        app.state.database = database
        # eager celery tasks run in this process and share the handle
        bind_task_database(database)
        logger.info("Marketplace API started")
        yield
        bind_task_database(None)
        database.dispose()
        logger.info("Marketplace API stopped")

    app = FastAPI(
        title="Marketplace Order Service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    include_routers(app)
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
