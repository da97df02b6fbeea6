"""
FastAPI routers for the contact import service.

Routers are split by concern and registered in ``crm_import.main``.
"""
