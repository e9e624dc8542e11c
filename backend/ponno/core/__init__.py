"""
Core package for shared utilities.

Configuration, structured logging, the application error hierarchy and
identity token verification used across the backend.
"""
