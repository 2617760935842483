import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fintrack.core.config import settings
from fintrack.core.errors import ERR_VALIDATION, StorageError
from fintrack.db.pool import close_db_pool, db_conn, open_db_pool
from fintrack.db.schema import apply_schema
from fintrack.routers.assets import router as assets_router
from fintrack.services.assets import storage_failure

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logging.getLogger("psycopg.pool").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    open_db_pool()
    try:
        if settings.db_auto_migrate:
            with db_conn() as conn:
                apply_schema(conn)
            logger.info("database schema applied")
        yield
    finally:
        close_db_pool()


app = FastAPI(lifespan=lifespan)
app.include_router(assets_router)


@app.get("/health")
def health():
    return {"ok": True}


@app.exception_handler(StarletteHTTPException)
def http_exc_handler(_, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"status_code": exc.status_code, "message": str(exc.detail), "data": None},
    )


@app.exception_handler(StorageError)
def storage_exc_handler(_, exc: StorageError):
    result = storage_failure(exc)
    return JSONResponse(status_code=result.status_code, content=result.to_body())


@app.exception_handler(RequestValidationError)
def validation_exc_handler(_, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"status_code": 422, "message": ERR_VALIDATION, "data": {"errors": errors}},
    )
