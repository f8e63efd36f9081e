"""
Dependencias para inyeccion de casos de uso.
"""
from portfolio_sync.application.use_cases.sync_use_cases import PortfolioSyncUseCases
from portfolio_sync.core.config import settings


def get_portfolio_sync_use_cases() -> PortfolioSyncUseCases:
    """
    Dependencia para obtener los casos de uso del sync.

    Returns:
        PortfolioSyncUseCases: Instancia configurada con los settings globales
    """
    return PortfolioSyncUseCases(settings)
