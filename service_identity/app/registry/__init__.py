"""
Client, environment and infrastructure records.
"""

from .models import (
    Client,
    ClientAggregate,
    Environment,
    EnvironmentStatus,
    InfrastructureManifest,
)
from .client_registry import ClientRegistry, client_key, client_id_key, environment_key

__all__ = [
    "Client",
    "ClientAggregate",
    "Environment",
    "EnvironmentStatus",
    "InfrastructureManifest",
    "ClientRegistry",
    "client_key",
    "client_id_key",
    "environment_key",
]
