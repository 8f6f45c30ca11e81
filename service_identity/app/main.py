"""
Identity service for Soltar.

Email sign-in with one-time passcodes, per-client environment provisioning,
stateless session tokens and the client's infrastructure manifest.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import AuthenticationError, NotFoundError, ValidationError
from shared.logging import set_client_context

from .clock import Clock, utc_now
from .infrastructure import InfrastructureService
from .otp import OTPManager, OTPNotifier, build_notifier
from .registry import ClientRegistry
from .schemas import (
    AuthResponse,
    ConnectResponse,
    InfrastructureResponse,
    InfrastructureUpdateRequest,
    InfrastructureUpdateResponse,
    MessageResponse,
    OTPRequest,
    OTPVerifyRequest,
    VPNConfigResponse,
)
from .sessions import SessionAuthority
from .storage import KeyValueStore, KeyNotFoundError, connect_store


SERVICE_NAME = "identity"


@dataclass(frozen=True)
class AuthenticatedSession:
    """Result of a validated bearer token."""
    client_id: str
    token: str


class IdentityService(BaseService):
    """Identity service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        store: Optional[KeyValueStore] = None,
        notifier: Optional[OTPNotifier] = None,
        clock: Clock = utc_now,
    ):
        super().__init__(SERVICE_NAME, config)
        self.clock = clock
        self.notifier = notifier or build_notifier(self.config)
        self.bearer = HTTPBearer(auto_error=False)

        # Signing key is fixed for the life of the process
        self.sessions = SessionAuthority(
            self.config.jwt_secret,
            ttl=timedelta(seconds=self.config.token_ttl_seconds),
            clock=clock,
            metrics=self.metrics,
        )

        self.store: Optional[KeyValueStore] = None
        self.otp: Optional[OTPManager] = None
        self.registry: Optional[ClientRegistry] = None
        self.infrastructure: Optional[InfrastructureService] = None
        self._owns_store = store is None
        if store is not None:
            self._bind_store(store)

        self._setup_identity_routes()

    def _bind_store(self, store: KeyValueStore):
        """Build the store-backed components."""
        self.store = store
        self.otp = OTPManager(
            store,
            self.notifier,
            ttl=timedelta(seconds=self.config.otp_ttl_seconds),
            notifier_timeout=self.config.notifier_timeout_seconds,
            clock=self.clock,
            metrics=self.metrics,
        )
        self.registry = ClientRegistry.from_config(store, self.config, clock=self.clock, metrics=self.metrics)
        self.infrastructure = InfrastructureService(self.registry, clock=self.clock, metrics=self.metrics)
        self.metrics.set_gauge("storage_degraded", 0 if store.durable else 1)

    async def on_startup(self):
        """Select the storage backend and warn about insecure defaults."""
        if self.config.uses_default_secret:
            self.logger.warning("JWT secret is the development default; set SOLTAR_JWT_SECRET")

        if self.store is None:
            self._bind_store(await connect_store(self.config))

        self.logger.info(
            "Identity service started",
            storage=self.store.backend_name,
            durable=self.store.durable,
            port=self.config.port,
        )

    async def on_shutdown(self):
        """Close the store if this service opened it."""
        if self.store is not None and self._owns_store:
            await self.store.close()

    async def _check_dependencies(self):
        """Report the active storage backend."""
        if self.store is None:
            return {"storage": {"backend": None, "durable": False, "reachable": False}}
        return {
            "storage": {
                "backend": self.store.backend_name,
                "durable": self.store.durable,
                "reachable": await self.store.ping(),
            }
        }

    async def authenticate(self, credentials: Optional[HTTPAuthorizationCredentials]) -> AuthenticatedSession:
        """Resolve a bearer credential to a client id."""
        if credentials is None or not credentials.credentials:
            raise AuthenticationError("Unauthorized")

        client_id = self.sessions.validate(credentials.credentials)
        set_client_context(client_id)
        return AuthenticatedSession(client_id=client_id, token=credentials.credentials)

    def _setup_identity_routes(self):
        """Set up identity-specific routes."""

        async def current_session(
            credentials: Optional[HTTPAuthorizationCredentials] = Depends(self.bearer),
        ) -> AuthenticatedSession:
            return await self.authenticate(credentials)

        @self.app.post("/register", response_model=MessageResponse)
        async def register(request: OTPRequest):
            """Issue a one-time passcode for an email."""
            email = request.email.strip()
            if not email:
                raise ValidationError("Missing email")

            await self.otp.issue(email)
            self.metrics.record_business_event("otp_requested")
            return MessageResponse(message="OTP sent to email")

        @self.app.post("/verify", response_model=AuthResponse)
        async def verify(request: OTPVerifyRequest):
            """Redeem a passcode, provisioning the client on first sign-in."""
            email = request.email.strip()
            if not email:
                raise ValidationError("Missing email")

            await self.otp.verify(email, request.otp)

            aggregate = await self.registry.get_or_create(email)
            token = self.sessions.issue(aggregate.id)
            set_client_context(aggregate.id)

            self.metrics.record_business_event("client_signed_in")
            self.logger.info("Verification completed", email=email, client_id=aggregate.id)
            return AuthResponse(
                client_id=aggregate.id,
                token=token,
                environment=aggregate.environment.to_wire(),
            )

        @self.app.post("/connect", response_model=ConnectResponse)
        async def connect(session: AuthenticatedSession = Depends(current_session)):
            """Record client activity and return its environment."""
            aggregate = await self.registry.touch_last_seen(session.client_id)
            return ConnectResponse(
                client_id=session.client_id,
                environment=aggregate.environment.to_wire(),
            )

        @self.app.get("/config", response_model=VPNConfigResponse)
        async def vpn_config(session: AuthenticatedSession = Depends(current_session)):
            """Connection pointer for the external VPN client."""
            aggregate = await self.registry.get_by_client_id(session.client_id)
            environment = aggregate.environment
            return VPNConfigResponse(
                server=environment.server_address,
                port=environment.server_port,
                token=session.token,
                environment_id=environment.id,
            )

        @self.app.post("/infrastructure", response_model=InfrastructureUpdateResponse)
        async def replace_infrastructure(
            request: InfrastructureUpdateRequest,
            session: AuthenticatedSession = Depends(current_session),
        ):
            """Overwrite the client's infrastructure manifest."""
            payload = request.infrastructure
            await self.infrastructure.replace(
                session.client_id,
                vpn_instance_ids=payload.vpn_instances,
                load_balancer_ids=payload.load_balancers,
                database_ids=payload.databases,
                storage_ids=payload.storage,
            )
            return InfrastructureUpdateResponse(client_id=session.client_id)

        @self.app.get("/infrastructure", response_model=InfrastructureResponse)
        async def get_infrastructure(session: AuthenticatedSession = Depends(current_session)):
            """Current manifest together with the environment."""
            aggregate = await self.registry.get_by_client_id(session.client_id)
            return InfrastructureResponse(
                client_id=session.client_id,
                infrastructure=aggregate.infrastructure.to_wire(),
                environment=aggregate.environment.to_wire(),
            )

        if self.config.debug_endpoints:
            self.logger.warning("Debug endpoints enabled; raw store reads are exposed")

            @self.app.get("/debug/{key:path}")
            async def debug_key(key: str):
                """Raw store read. Development only."""
                try:
                    data = await self.store.get(key)
                except KeyNotFoundError:
                    raise NotFoundError("Key not found") from None
                return {
                    "key": key,
                    "data": data.decode("utf-8", errors="replace"),
                    "size": len(data),
                }


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = IdentityService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = IdentityService()
    service.run()
