"""
CRM Package
===========

Read-only CRM queries exposed to the browser client.

Main Components:
----------------
- client.py: Salesforce REST query client with the count fan-out
- routes.py: FastAPI router with /connecting
"""

from .routes import crm_router

__all__ = ["crm_router"]
