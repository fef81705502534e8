"""
REST API - Flask application exposing the FinanceLedger under /api
"""

from eventsync_finance.api.app import create_app

__all__ = ["create_app"]
