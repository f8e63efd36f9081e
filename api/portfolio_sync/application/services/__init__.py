"""
Servicios de aplicacion.
"""
