"""
Per-client infrastructure manifest.
"""

from .service import InfrastructureService

__all__ = ["InfrastructureService"]
