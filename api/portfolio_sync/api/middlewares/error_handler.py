"""
Manejo de errores HTTP del sync.

- AppException: handler que responde con su status_code y to_dict().
- Cualquier otra excepcion: el middleware la loguea y responde 500 con
  el mismo formato de cuerpo.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from loguru import logger

from portfolio_sync.shared.exceptions.base import AppException


def _escape(text: str) -> str:
    # loguru interpreta llaves como campos de formato
    return text.replace("{", "{{").replace("}", "}}")


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Traduce AppException a JSON; 4xx se loguea como warning, 5xx como error."""
    log = logger.warning if exc.is_client_error else logger.error
    log(
        f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_code}: "
        f"{_escape(exc.message)}"
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Ultima red: excepciones no manejadas -> 500 JSON."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.opt(exception=exc).error(
                f"Error no manejado en {request.method} {request.url.path}: {_escape(str(exc))}"
            )
            body = AppException(
                "Ha ocurrido un error interno del servidor",
                error_code="INTERNAL_SERVER_ERROR",
                details={"path": request.url.path},
            ).to_dict()
            return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
