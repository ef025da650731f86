"""HTTP surface (FastAPI). Thin dispatch onto the application services."""
