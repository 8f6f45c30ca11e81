"""
Read and replace path for the infrastructure manifest.
"""

from datetime import timedelta
from typing import Iterable, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..clock import Clock, utc_now
from ..registry import ClientRegistry, InfrastructureManifest


class InfrastructureService:
    """Manifest access for an already authenticated client id.

    Referenced ids are stored as given; checking that they name real
    resources belongs to the orchestrator that provisions them.
    """

    def __init__(
        self,
        registry: ClientRegistry,
        *,
        clock: Clock = utc_now,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.registry = registry
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("identity.infrastructure")

    async def get(self, client_id: str) -> InfrastructureManifest:
        aggregate = await self.registry.get_by_client_id(client_id)
        return aggregate.infrastructure

    async def replace(
        self,
        client_id: str,
        *,
        vpn_instance_ids: Iterable[str] = (),
        load_balancer_ids: Iterable[str] = (),
        database_ids: Iterable[str] = (),
        storage_ids: Iterable[str] = (),
    ) -> InfrastructureManifest:
        """Overwrite all four id-sets. Last writer wins; nothing is merged."""
        current = await self.get(client_id)

        now = self.clock()
        if now <= current.last_updated_at:
            now = current.last_updated_at + timedelta(microseconds=1)

        manifest = InfrastructureManifest(
            vpn_instance_ids=list(vpn_instance_ids),
            load_balancer_ids=list(load_balancer_ids),
            database_ids=list(database_ids),
            storage_ids=list(storage_ids),
            created_at=current.created_at,
            last_updated_at=now,
        )
        await self.registry.replace_infrastructure(client_id, manifest)

        if self.metrics:
            self.metrics.record_business_event("infrastructure_replaced")
        self.logger.info(
            "Infrastructure replaced",
            client_id=client_id,
            vpn_instances=len(manifest.vpn_instance_ids),
            load_balancers=len(manifest.load_balancer_ids),
            databases=len(manifest.database_ids),
            storage=len(manifest.storage_ids),
        )
        return manifest
