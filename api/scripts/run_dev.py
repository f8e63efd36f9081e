"""
Script para ejecutar el servidor del sync en modo desarrollo.
"""
import sys
from pathlib import Path

import uvicorn

_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

from portfolio_sync.core.config import settings


if __name__ == "__main__":
    uvicorn.run(
        "portfolio_sync.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level=settings.LOG_LEVEL.lower()
    )
