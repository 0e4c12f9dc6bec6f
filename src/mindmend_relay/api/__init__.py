"""HTTP API: FastAPI app factory and dependency wiring."""
