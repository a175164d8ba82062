"""
API v1 package.

Contains versioned API routes for the identity API.
"""

from trustgraph.api.v1.routes import router

__all__ = ["router"]
