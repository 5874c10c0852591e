"""
Test Suite
==========

Test Categories:
- unit: Unit tests for individual components
- integration: HTTP API and real-browser round trips
"""
