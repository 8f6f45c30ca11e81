"""
Integration tests for the complete sign-in flow.
"""

import asyncio

import httpx
import pytest

from service_identity.app.main import create_app
from service_identity.app.storage import MemoryStore
from shared.config import ServiceConfig
from shared.test_helpers import FakeClock, MockEnvironment, RecordingNotifier


class TestIdentityFlow:
    """Integration tests for register, verify, connect and manifest updates."""

    @pytest.fixture
    def notifier(self):
        return RecordingNotifier()

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def app(self, notifier, clock):
        """Identity app over an in-memory store."""
        config = ServiceConfig(service_name="identity", **MockEnvironment.get_config_overrides())
        return create_app(config, store=MemoryStore(), notifier=notifier, clock=clock)

    def http_client(self, app):
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://identity")

    async def sign_in(self, client, notifier, email):
        response = await client.post("/register", json={"email": email})
        assert response.status_code == 200

        response = await client.post("/verify", json={"email": email, "otp": notifier.last_code(email)})
        assert response.status_code == 200
        return response.json()

    @pytest.mark.asyncio
    async def test_complete_flow(self, app, notifier, clock):
        """Sign in, fetch VPN config, connect, publish and read back the manifest."""
        async with self.http_client(app) as client:
            session = await self.sign_in(client, notifier, "alice@example.com")
            headers = {"Authorization": f"Bearer {session['token']}"}

            config_response = await client.get("/config", headers=headers)
            assert config_response.status_code == 200
            vpn = config_response.json()
            assert vpn["server"] == session["environment"]["vpn_server"]
            assert vpn["server"].startswith(f"vpn-{session['client_id'][:8]}.")
            assert vpn["port"] == 443
            assert vpn["token"] == session["token"]

            clock.advance(minutes=30)
            connect_response = await client.post("/connect", headers=headers)
            assert connect_response.status_code == 200
            assert connect_response.json()["status"] == "connected"

            update = {
                "infrastructure": {
                    "vpn_instances": ["i-0abc"],
                    "load_balancers": ["lb-main"],
                    "databases": ["db-primary", "db-primary"],
                    "storage": [],
                }
            }
            update_response = await client.post("/infrastructure", json=update, headers=headers)
            assert update_response.status_code == 200

            manifest = (await client.get("/infrastructure", headers=headers)).json()["infrastructure"]
            assert manifest["vpn_instances"] == ["i-0abc"]
            assert manifest["load_balancers"] == ["lb-main"]
            assert manifest["databases"] == ["db-primary"]
            assert manifest["storage"] == []

            # A second sign-in resolves to the same client
            again = await self.sign_in(client, notifier, "alice@example.com")
            assert again["client_id"] == session["client_id"]

    @pytest.mark.asyncio
    async def test_clients_are_isolated(self, app, notifier):
        """Each token only reaches its own client's manifest."""
        async with self.http_client(app) as client:
            alice = await self.sign_in(client, notifier, "alice@example.com")
            bob = await self.sign_in(client, notifier, "bob@example.com")

            await client.post(
                "/infrastructure",
                json={"infrastructure": {"vpn_instances": ["i-alice"]}},
                headers={"Authorization": f"Bearer {alice['token']}"},
            )

            bob_view = await client.get(
                "/infrastructure",
                headers={"Authorization": f"Bearer {bob['token']}"},
            )
            assert bob_view.json()["infrastructure"]["vpn_instances"] == []
            assert alice["environment"]["id"] != bob["environment"]["id"]

    @pytest.mark.asyncio
    async def test_reissued_code_supersedes_previous(self, app, notifier):
        """Requesting a new code invalidates the one sent before it."""
        async with self.http_client(app) as client:
            email = "carol@example.com"
            codes = []
            for _ in range(3):
                await client.post("/register", json={"email": email})
                codes.append(notifier.last_code(email))

            stale = [code for code in codes[:-1] if code != codes[-1]]
            for code in stale:
                response = await client.post("/verify", json={"email": email, "otp": code})
                assert response.status_code == 400

            response = await client.post("/verify", json={"email": email, "otp": codes[-1]})
            assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_concurrent_sign_ins_for_distinct_emails(self, app, notifier):
        """Parallel first sign-ins each get their own client."""
        emails = [f"user{i}@example.com" for i in range(10)]
        async with self.http_client(app) as client:
            sessions = await asyncio.gather(*(self.sign_in(client, notifier, email) for email in emails))

        assert len({session["client_id"] for session in sessions}) == len(emails)
