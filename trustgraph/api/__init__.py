"""HTTP adapter - FastAPI application exposing the identity domain."""
