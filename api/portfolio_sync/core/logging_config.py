"""
Configuracion de loguru para el servidor y el CLI.
"""
import sys

from loguru import logger


def configure_logging(level: str = "INFO", log_file: str = "") -> None:
    """
    Instala los sinks de loguru: stderr al nivel indicado y, si se
    configura LOG_FILE, un archivo con rotacion.

    Llamarla varias veces reemplaza los sinks anteriores (no duplica).
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
    if log_file:
        logger.add(
            log_file,
            rotation="500 MB",
            retention="10 days",
            level=level.upper()
        )
