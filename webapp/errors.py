import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from services.errors import DictionaryError, PersistenceError

logger = logging.getLogger(__name__)


async def dictionary_error_handler(request: Request, exc: DictionaryError) -> JSONResponse:
    if isinstance(exc, PersistenceError):
        return JSONResponse(status_code=500, content={"success": False, "detail": "Server Error"})
    return JSONResponse(status_code=exc.status_code, content={"success": False, "detail": exc.message})


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "detail": "Server Error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DictionaryError, dictionary_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
