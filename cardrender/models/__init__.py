"""
Data Models
===========

Pydantic models for card content, layout plans, export jobs, and the render API.
"""
