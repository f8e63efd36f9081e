"""
Excepciones de autorización del endpoint de sync.
"""
from portfolio_sync.shared.exceptions.base import AppException


class UnauthorizedException(AppException):
    """Excepción cuando falta o no coincide el token de sync."""
    
    def __init__(self, message: str = "No autorizado"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="UNAUTHORIZED"
        )
