"""
Sync Airtable -> snapshot JSON del portfolio.
"""
