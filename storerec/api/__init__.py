"""FastAPI application module for StoreRec.

This module contains the FastAPI application, route handlers, error types
and logging setup for the recommendation service.
"""
