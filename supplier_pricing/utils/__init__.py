"""
Utilities
=========

Logging and error types shared across the service.
"""
