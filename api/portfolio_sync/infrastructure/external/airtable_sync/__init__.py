"""
Pipeline de sincronizacion one-way: Airtable -> snapshot JSON del portfolio.

Se ejecuta en build (CLI) o bajo demanda (endpoint HTTP). Decide en cada
corrida entre tres caminos:
- cached: Airtable no cambio, se reutiliza el snapshot sin reescribirlo.
- incremental: solo se re-traen los registros nuevos o modificados.
- full: se re-trae todo (forzado, sin metadata previa, o como fallback).

El contenido publicado es el mismo sin importar el camino tomado.
"""
