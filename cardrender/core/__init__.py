"""
Core Business Logic
==================

Core modules for card layout fitting, themes, and rendering.

Components:
- content: Description sanitizing and icon normalization
- layout: Deterministic layout plans and fit procedures
- themes: Theme capability and explicit registry
- rendering: Capture, headless render, and export orchestration
"""
