from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError, DBAPIError, SQLAlchemyError
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Nombre del índice parcial que garantiza un solo registro activo por evacuado
ACTIVE_REGISTRATION_INDEX = "uq_active_registration_per_evacuee"


# ---------- Errores de dominio ----------

class ApiError(Exception):
    """Error de negocio con código HTTP asociado."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class BadRequestError(ApiError):
    status_code = 400
    error_type = "bad_request"


class NotFoundError(ApiError):
    status_code = 404
    error_type = "not_found"


class ConflictError(ApiError):
    status_code = 409
    error_type = "conflict"


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error(f"API Error: {exc.status_code} - {exc.message}")
        else:
            logger.warning(f"API Error: {exc.status_code} - {exc.message}", extra={"path": request.url.path})

        content = {
            "error": True,
            "message": exc.message,
            "type": exc.error_type,
        }
        content.update(exc.extra)
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Solo loguear como ERROR si es un error del servidor (5xx)
        if exc.status_code >= 500:
            logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
        elif exc.status_code >= 400:
            logger.warning(f"HTTP Exception: {exc.status_code} - {exc.detail}")

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": exc.detail,
                "type": "http_error"
            }
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Campos faltantes o mal formados: 400 (BadRequest)
        logger.warning(f"Validation Error: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={
                "error": True,
                "message": "Invalid or missing fields in request.",
                "type": "validation_error",
                "details": jsonable_encoder(exc.errors())
            }
        )

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError):
        error_message = str(exc.orig).lower() if getattr(exc, 'orig', None) is not None else str(exc).lower()

        status_code = 400
        if ACTIVE_REGISTRATION_INDEX in error_message or (
            "evacuation_registrations.evacuee_resident_id" in error_message and "unique" in error_message
        ):
            status_code = 409
            message = "This evacuee already has an active registration. Please decamp them first."
        elif "unique constraint" in error_message or "duplicate key" in error_message:
            if "family_head" in error_message:
                message = "A family head record already exists for this resident."
            else:
                message = "A record with the same unique data already exists."
        elif "foreign key constraint" in error_message:
            message = "A referenced record does not exist or is still referenced by other records."
        elif "not-null constraint" in error_message or "not null constraint" in error_message:
            message = "Missing required fields."
        else:
            message = "Database integrity error."

        logger.error(f"Database Integrity Error: {error_message}")
        return JSONResponse(
            status_code=status_code,
            content={
                "error": True,
                "message": message,
                "type": "integrity_error",
            }
        )

    @app.exception_handler(DBAPIError)
    async def db_exception_handler(request: Request, exc: DBAPIError):
        logger.error(f"Database Error: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": True,
                "message": "Database error.",
                "type": "database_error"
            }
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database Error: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": True,
                "message": "Database error.",
                "type": "database_error"
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected Error: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": True,
                "message": "Internal server error.",
                "type": "internal_error"
            }
        )
