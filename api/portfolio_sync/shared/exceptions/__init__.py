"""
Excepciones de la aplicacion.
"""
