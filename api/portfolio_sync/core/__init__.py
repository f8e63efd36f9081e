"""
Configuracion, logging y eventos de la aplicacion.
"""
