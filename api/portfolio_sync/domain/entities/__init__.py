"""
Entidades del dominio.
"""
