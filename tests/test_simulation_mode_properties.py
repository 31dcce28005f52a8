"""
Property-based tests for simulation mode.

In simulation mode neither the oracle nor Telegram is contacted, while
cycles and manual checks still produce well-formed results.
"""

import asyncio
import string
from io import StringIO

import httpx
from hypothesis import given, settings
from hypothesis import strategies as st

from nawala_checker.audit_logger import AuditLogger
from nawala_checker.config import OracleConfig, PersistenceConfig, SystemConfig, TelegramConfig
from nawala_checker.enums import CycleStatus
from nawala_checker.service import build_services


def valid_domain_strategy() -> st.SearchStrategy[str]:
    return st.builds(
        lambda label, tld: f"{label}.{tld}",
        st.text(alphabet=string.ascii_lowercase + string.digits, min_size=1, max_size=20),
        st.sampled_from(["com", "id", "net", "org", "co.id"]),
    )


def recording_transport(seen: list) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(500)
    return httpx.MockTransport(handler)


def simulated_services(oracle_seen: list, telegram_seen: list):
    config = SystemConfig(
        oracle=OracleConfig(base_url="https://oracle.test"),
        telegram=TelegramConfig(bot_token="123:abc", admin_id="42"),
        persistence=PersistenceConfig(state_file_path=None, hmac_secret="test-secret"),
        simulation_mode=True,
    )
    return build_services(
        config,
        logger=AuditLogger(output_stream=StringIO()),
        oracle_transport=recording_transport(oracle_seen),
        telegram_transport=recording_transport(telegram_seen),
    )


class TestSimulationModeProperty:
    """Simulation mode makes no network requests."""

    @given(names=st.lists(valid_domain_strategy(), min_size=1, max_size=10, unique=True))
    @settings(max_examples=50, deadline=None)
    def test_cycle_makes_no_network_requests(self, names: list[str]) -> None:
        """
        *For any* registry contents, a full cycle completes, records every
        domain as unblocked and publishes a summary without any request.
        """
        oracle_seen: list = []
        telegram_seen: list = []
        services = simulated_services(oracle_seen, telegram_seen)

        async def run():
            try:
                for name in names:
                    await services.registry.add(name)
                outcome = await services.engine.run_cycle()
                domains = await services.registry.list()
                return outcome, domains
            finally:
                await services.aclose()

        outcome, domains = asyncio.run(run())

        assert outcome.status == CycleStatus.COMPLETED
        assert outcome.summary.summary.total_checked == len(names)
        assert outcome.summary.summary.blocked == 0
        assert all(d.last_checked is not None and d.last_status.blocked is False for d in domains)
        assert oracle_seen == []
        assert telegram_seen == []

    @given(names=st.lists(valid_domain_strategy(), min_size=1, max_size=10, unique=True))
    @settings(max_examples=50, deadline=None)
    def test_manual_check_makes_no_network_requests(self, names: list[str]) -> None:
        oracle_seen: list = []
        services = simulated_services(oracle_seen, [])

        async def run():
            try:
                return await services.engine.check_domains(names)
            finally:
                await services.aclose()

        batch = asyncio.run(run())
        assert batch.success
        assert set(batch.summary.unblocked_domains) == set(names)
        assert oracle_seen == []
