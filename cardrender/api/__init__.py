"""
HTTP API
========

FastAPI application exposing the headless render service and theme listing.
"""
