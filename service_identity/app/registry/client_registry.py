"""
Client registry: create-or-fetch provisioning and dual-indexed lookups.
"""

import uuid
from typing import Optional

from shared.config import BaseConfig
from shared.errors import NotFoundError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..clock import Clock, utc_now
from ..storage import KeyValueStore, KeyNotFoundError
from .models import ClientAggregate, Environment, EnvironmentStatus, InfrastructureManifest


def client_key(email: str) -> str:
    return f"client:{email}"


def client_id_key(client_id: str) -> str:
    return f"client_id:{client_id}"


def environment_key(environment_id: str) -> str:
    return f"environment:{environment_id}"


class ClientRegistry:
    """Owns the Client / Environment / Infrastructure aggregate.

    The aggregate is stored twice, under ``client:<email>`` and
    ``client_id:<id>``, and the environment alone under
    ``environment:<id>``. Updates rewrite both aggregate views.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        region: str = "us-east-1",
        vpn_domain: str = "soltar.com",
        vpn_port: int = 443,
        clock: Clock = utc_now,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.region = region
        self.vpn_domain = vpn_domain
        self.vpn_port = vpn_port
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("identity.registry")

    @classmethod
    def from_config(cls, store: KeyValueStore, config: BaseConfig, **kwargs) -> "ClientRegistry":
        return cls(
            store,
            region=config.region,
            vpn_domain=config.vpn_domain,
            vpn_port=config.vpn_port,
            **kwargs,
        )

    def server_address_for(self, client_id: str) -> str:
        """VPN hostname derived from the client id."""
        return f"vpn-{client_id[:8]}.{self.vpn_domain}"

    def _build(self, email: str) -> ClientAggregate:
        now = self.clock()
        client_id = str(uuid.uuid4())
        environment = Environment(
            id=str(uuid.uuid4()),
            client_id=client_id,
            server_address=self.server_address_for(client_id),
            server_port=self.vpn_port,
            created_at=now,
            status=EnvironmentStatus.ACTIVE,
            region=self.region,
        )
        return ClientAggregate(
            id=client_id,
            email=email,
            created_at=now,
            last_seen_at=now,
            environment=environment,
            infrastructure=InfrastructureManifest.empty(now),
        )

    async def get_or_create(self, email: str) -> ClientAggregate:
        """Return the aggregate for ``email``, provisioning it on first use.

        The by-id and environment records are written before the by-email
        key is claimed with a conditional write. An email is therefore only
        ever bound to a client whose by-id record exists, and concurrent first
        registrations agree on a single client id. A failed write leaves the
        email unclaimed so the next attempt starts over.
        """
        try:
            existing = ClientAggregate.from_bytes(await self.store.get(client_key(email)))
        except KeyNotFoundError:
            existing = None

        if existing is not None:
            self._record_outcome("existing")
            return existing

        aggregate = self._build(email)
        payload = aggregate.to_bytes()

        await self.store.put(client_id_key(aggregate.id), payload)
        await self.store.put(environment_key(aggregate.environment.id), aggregate.environment.to_bytes())

        if not await self.store.put_if_absent(client_key(email), payload):
            # Another request provisioned this email first; the records written
            # above stay unreferenced
            winner = ClientAggregate.from_bytes(await self.store.get(client_key(email)))
            self.logger.info(
                "Concurrent registration resolved",
                email=email,
                client_id=winner.id,
                discarded_client_id=aggregate.id,
            )
            self._record_outcome("existing")
            return winner

        self._record_outcome("created")
        self.logger.info(
            "Client provisioned",
            email=email,
            client_id=aggregate.id,
            environment_id=aggregate.environment.id,
            vpn_server=aggregate.environment.server_address,
        )
        return aggregate

    async def get_by_client_id(self, client_id: str) -> ClientAggregate:
        """Look up by client id. Raises ``NotFoundError`` for an unknown id."""
        try:
            data = await self.store.get(client_id_key(client_id))
        except KeyNotFoundError:
            raise NotFoundError("Client not found") from None
        return ClientAggregate.from_bytes(data)

    async def get_environment(self, environment_id: str) -> Environment:
        """Look up an environment by its own id."""
        try:
            data = await self.store.get(environment_key(environment_id))
        except KeyNotFoundError:
            raise NotFoundError("Environment not found") from None
        return Environment.from_bytes(data)

    async def touch_last_seen(self, client_id: str) -> ClientAggregate:
        """Stamp ``last_seen_at`` with the current time."""
        aggregate = await self.get_by_client_id(client_id)
        aggregate.last_seen_at = self.clock()
        await self._save(aggregate)
        return aggregate

    async def replace_infrastructure(self, client_id: str, manifest: InfrastructureManifest) -> ClientAggregate:
        """Swap in ``manifest`` as the client's infrastructure, unmerged."""
        aggregate = await self.get_by_client_id(client_id)
        aggregate.infrastructure = manifest
        await self._save(aggregate)
        return aggregate

    async def _save(self, aggregate: ClientAggregate) -> None:
        # Both views carry the same bytes so they cannot diverge
        payload = aggregate.to_bytes()
        await self.store.put(client_id_key(aggregate.id), payload)
        await self.store.put(client_key(aggregate.email), payload)

    def _record_outcome(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("clients_provisioned_total", outcome=outcome)
