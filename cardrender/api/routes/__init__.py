"""
API Routes
==========
"""
