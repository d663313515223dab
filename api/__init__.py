"""
HTTP layer: W3C Reconciliation Service API over FastAPI.
"""
