"""
Service-layer helpers used by the API endpoints.
"""
