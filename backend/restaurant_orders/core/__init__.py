"""
Core package for shared utilities.

Configuration, structured logging and token verification shared across the
backend application.
"""
