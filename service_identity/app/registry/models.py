"""
Data models for registered clients.

Field aliases are the JSON names used both in stored records and in HTTP
responses; VPN clients already in the field read ``vpn_server`` and
``vpn_port`` from these payloads.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from shared.errors import StorageError

ModelT = TypeVar("ModelT", bound="StoredModel")


def _unique(values: List[str]) -> List[str]:
    """Drop repeated ids, keeping first occurrence order."""
    return list(dict.fromkeys(values))


class StoredModel(BaseModel):
    """Base for records persisted as JSON in the key-value store."""

    model_config = ConfigDict(populate_by_name=True)

    def to_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_bytes(cls: Type[ModelT], data: bytes) -> ModelT:
        try:
            return cls.model_validate_json(data)
        except PydanticValidationError as e:
            raise StorageError(f"Unreadable {cls.__name__} record") from e


class EnvironmentStatus(str, Enum):
    """Lifecycle of a provisioned environment."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DEPROVISIONED = "deprovisioned"


class Environment(StoredModel):
    """Per-client pointer to the externally provisioned VPN endpoint."""

    id: str
    client_id: str
    server_address: str = Field(alias="vpn_server")
    server_port: int = Field(alias="vpn_port")
    created_at: datetime = Field(alias="created")
    status: EnvironmentStatus = EnvironmentStatus.ACTIVE
    region: str
    attached_instance_ids: List[str] = Field(default_factory=list, alias="instances")
    attached_database_ids: List[str] = Field(default_factory=list, alias="databases")
    attached_storage_ids: List[str] = Field(default_factory=list, alias="storage")


class InfrastructureManifest(StoredModel):
    """Free-form resource ids associated with a client; replaced wholesale."""

    vpn_instance_ids: List[str] = Field(default_factory=list, alias="vpn_instances")
    load_balancer_ids: List[str] = Field(default_factory=list, alias="load_balancers")
    database_ids: List[str] = Field(default_factory=list, alias="databases")
    storage_ids: List[str] = Field(default_factory=list, alias="storage")
    created_at: datetime = Field(alias="created")
    last_updated_at: datetime = Field(alias="last_updated")

    @field_validator("vpn_instance_ids", "load_balancer_ids", "database_ids", "storage_ids")
    @classmethod
    def _dedupe(cls, values: List[str]) -> List[str]:
        return _unique(values)

    @classmethod
    def empty(cls, now: datetime) -> "InfrastructureManifest":
        return cls(created_at=now, last_updated_at=now)


class Client(StoredModel):
    """A registered identity. ``id`` never changes once assigned."""

    id: str
    email: str
    created_at: datetime = Field(alias="created")
    last_seen_at: datetime = Field(alias="last_seen")


class ClientAggregate(Client):
    """Client plus its environment and infrastructure manifest.

    This is the value stored under both the by-email and by-id keys.
    """

    environment: Environment
    infrastructure: InfrastructureManifest
