"""
FastAPI routers for the lip-track worker.
"""

from liptrack.routers import health, lip_track

__all__ = ["health", "lip_track"]
