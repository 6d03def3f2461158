"""HTTP surface of the mock provider (FastAPI application and diagnostics)."""
