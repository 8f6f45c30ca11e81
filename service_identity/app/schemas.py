"""
Request and response bodies for the identity HTTP API.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class OTPRequest(BaseModel):
    """Request model for code issuance."""
    email: str


class OTPVerifyRequest(BaseModel):
    """Request model for code redemption."""
    email: str
    otp: str


class InfrastructurePayload(BaseModel):
    """Replacement id-sets; an omitted set is replaced by an empty one."""
    vpn_instances: List[str] = Field(default_factory=list)
    load_balancers: List[str] = Field(default_factory=list)
    databases: List[str] = Field(default_factory=list)
    storage: List[str] = Field(default_factory=list)


class InfrastructureUpdateRequest(BaseModel):
    """Request model for a manifest overwrite."""
    infrastructure: InfrastructurePayload


class MessageResponse(BaseModel):
    message: str


class AuthResponse(BaseModel):
    """Response model for a redeemed code."""
    client_id: str
    token: str
    environment: Dict[str, Any]


class ConnectResponse(BaseModel):
    status: str = "connected"
    client_id: str
    environment: Dict[str, Any]


class VPNConfigResponse(BaseModel):
    """Connection pointer handed to the external VPN client."""
    server: str
    port: int
    token: str
    environment_id: str


class InfrastructureUpdateResponse(BaseModel):
    message: str = "Infrastructure updated"
    client_id: str


class InfrastructureResponse(BaseModel):
    client_id: str
    infrastructure: Dict[str, Any]
    environment: Dict[str, Any]
