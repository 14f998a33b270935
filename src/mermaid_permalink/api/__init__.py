"""
HTTP API for the Mermaid permalink service.

This module provides the FastAPI application that accepts diagram source,
hands out permanent render URLs and serves cached renders of them.
"""
