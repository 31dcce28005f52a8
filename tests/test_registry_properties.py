"""
Property-based tests for the Domain Registry and the Check History Store.
"""

import asyncio
import string
import typing
from typing import Optional

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from nawala_checker.enums import CheckFrequency, ErrorCode
from nawala_checker.exceptions import (
    DuplicateDomainError,
    InvalidFormatError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from nawala_checker.history import CheckHistoryStore
from nawala_checker.models import Summary
from nawala_checker.registry import DomainRegistry, parse_frequency
from nawala_checker.state_store import StateStore


def domain_name_strategy() -> st.SearchStrategy[str]:
    return st.builds(
        lambda sld, tld: f"{sld}.{tld}",
        st.text(alphabet=string.ascii_lowercase + string.digits, min_size=1, max_size=12),
        st.sampled_from(["com", "id", "net", "org"]),
    )


def make_registry(store: Optional[StateStore] = None) -> tuple[DomainRegistry, CheckHistoryStore]:
    store = store or StateStore()
    history = CheckHistoryStore(store)
    return DomainRegistry(store, history), history


class FailingHistoryStore(CheckHistoryStore):
    """History whose cascade delete always fails."""

    async def delete_for_domain(self, name: str) -> int:
        raise PersistenceError(code="persistence_failed", message="disk full")


class TestNameUniquenessProperty:
    """At most one record exists per normalized name."""

    @given(name=domain_name_strategy())
    @settings(max_examples=50)
    def test_case_variants_are_duplicates(self, name: str) -> None:
        """*For any* name, adding an upper-case variant after it fails as duplicate."""
        registry, _ = make_registry()

        async def run() -> None:
            added = await registry.add(name)
            assert added.name == name
            with pytest.raises(DuplicateDomainError):
                await registry.add(f" {name.upper()} ")
            assert [d.name for d in await registry.list()] == [name]

        asyncio.run(run())

    @given(names=st.lists(domain_name_strategy(), min_size=1, max_size=8, unique=True))
    @settings(max_examples=50)
    def test_list_is_sorted_by_name(self, names: list[str]) -> None:
        registry, _ = make_registry()

        async def run() -> list[str]:
            for name in names:
                await registry.add(name)
            return [d.name for d in await registry.list()]

        assert asyncio.run(run()) == sorted(names)


class TestRegistryOperations:

    def test_add_defaults(self) -> None:
        registry, _ = make_registry()
        domain = asyncio.run(registry.add("Example.COM", "  shop  "))

        assert domain.name == "example.com"
        assert domain.description == "shop"
        assert domain.is_active is True
        assert domain.check_frequency == CheckFrequency.HOURLY
        assert domain.last_checked is None
        assert domain.last_status.blocked is None
        assert domain.created_at == domain.updated_at

    def test_add_invalid_name(self) -> None:
        registry, _ = make_registry()
        with pytest.raises(InvalidFormatError):
            asyncio.run(registry.add("not-a-domain"))

    def test_add_non_ascii_name_stores_nothing(self) -> None:
        registry, _ = make_registry()
        with pytest.raises(InvalidFormatError):
            asyncio.run(registry.add("bücher.de"))
        assert asyncio.run(registry.list()) == []

    def test_list_eligible_annotation_resolves(self) -> None:
        hints = typing.get_type_hints(DomainRegistry.list_eligible_for_frequency)
        assert hints["return"] == list[str]

    def test_add_invalid_frequency(self) -> None:
        registry, _ = make_registry()
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(registry.add("example.com", frequency="monthly"))
        assert exc_info.value.code == ErrorCode.INVALID_FREQUENCY.value

    @pytest.mark.parametrize("value,expected", [
        (None, CheckFrequency.HOURLY),
        ("", CheckFrequency.HOURLY),
        ("Daily", CheckFrequency.DAILY),
        (CheckFrequency.WEEKLY, CheckFrequency.WEEKLY),
    ])
    def test_parse_frequency(self, value, expected) -> None:
        assert parse_frequency(value) == expected

    def test_toggle_twice_restores_flag(self) -> None:
        registry, _ = make_registry()

        async def run() -> None:
            await registry.add("example.com")
            first = await registry.toggle_active("EXAMPLE.com")
            assert first.is_active is False
            second = await registry.toggle_active("example.com")
            assert second.is_active is True

        asyncio.run(run())

    def test_toggle_missing_raises_not_found(self) -> None:
        registry, _ = make_registry()
        with pytest.raises(NotFoundError):
            asyncio.run(registry.toggle_active("missing.com"))

    def test_get_missing_returns_none(self) -> None:
        registry, _ = make_registry()
        assert asyncio.run(registry.get("missing.com")) is None

    def test_eligible_set_is_active_hourly_only(self) -> None:
        registry, _ = make_registry()

        async def run() -> list[str]:
            await registry.add("b.com")
            await registry.add("a.com")
            await registry.add("daily.com", frequency="daily")
            await registry.add("off.com")
            await registry.toggle_active("off.com")
            return await registry.list_eligible_for_frequency(CheckFrequency.HOURLY)

        assert asyncio.run(run()) == ["a.com", "b.com"]

    def test_record_check_updates_status_and_history(self) -> None:
        registry, history = make_registry()

        async def run() -> None:
            await registry.add("example.com")
            domain = await registry.record_check("example.com", True, response_time_ms=12.5)
            assert domain.last_status.blocked is True
            assert domain.last_checked == domain.last_status.timestamp

            results = await history.recent("example.com")
            assert len(results) == 1
            assert results[0].blocked is True
            assert results[0].timestamp == domain.last_checked
            assert results[0].response_time_ms == 12.5

        asyncio.run(run())

    def test_record_check_for_unknown_name_raises(self) -> None:
        registry, history = make_registry()

        async def run() -> None:
            with pytest.raises(NotFoundError):
                await registry.record_check("adhoc.com", False)
            assert await history.latest() == []

        asyncio.run(run())

    def test_remove_cascades_to_history(self) -> None:
        registry, history = make_registry()

        async def run() -> None:
            await registry.add("example.com")
            await registry.add("other.com")
            await registry.record_check("example.com", False)
            await registry.record_check("other.com", True)

            removed = await registry.remove("example.com")
            assert removed.name == "example.com"
            assert await registry.get("example.com") is None
            assert await history.recent("example.com") == []
            assert len(await history.recent("other.com")) == 1

            with pytest.raises(NotFoundError):
                await registry.remove("example.com")

        asyncio.run(run())

    def test_remove_survives_history_failure(self) -> None:
        """The domain stays deleted even when its history cannot be removed."""
        store = StateStore()
        history = FailingHistoryStore(store)
        registry = DomainRegistry(store, history)

        async def run() -> None:
            await registry.add("example.com")
            await registry.record_check("example.com", True)
            await registry.remove("example.com")
            assert await registry.get("example.com") is None
            assert len(await history.recent("example.com")) == 1

        asyncio.run(run())

    def test_record_check_history_failure_propagates(self) -> None:
        """A failed history append is raised; the status update is kept."""

        class FailingAppendHistory(CheckHistoryStore):
            async def append(self, result) -> None:
                raise PersistenceError(code="persistence_failed", message="disk full")

        store = StateStore()
        registry = DomainRegistry(store, FailingAppendHistory(store))

        async def run() -> None:
            await registry.add("example.com")
            with pytest.raises(PersistenceError):
                await registry.record_check("example.com", True)
            domain = await registry.get("example.com")
            assert domain.last_status.blocked is True

        asyncio.run(run())

    def test_statistics(self) -> None:
        registry, _ = make_registry()

        async def run():
            await registry.add("a.com")
            await registry.add("b.com", frequency="weekly")
            await registry.add("c.com")
            await registry.toggle_active("c.com")
            await registry.record_check("a.com", True)
            await registry.record_check("a.com", False)
            await registry.record_check("b.com", True)
            return await registry.statistics()

        stats = asyncio.run(run())
        assert stats.total_domains == 3
        assert stats.active_domains == 2
        assert stats.hourly_domains == 1
        assert stats.recent_checks == 3
        assert stats.blocked_count == 2
        assert stats.unblocked_count == 1


class TestCheckHistoryStore:

    def test_recent_is_limited_and_newest_first(self) -> None:
        registry, history = make_registry()

        async def run() -> None:
            await registry.add("example.com")
            for blocked in (False, False, True):
                await registry.record_check("example.com", blocked)
            results = await history.recent("example.com", limit=2)
            assert len(results) == 2
            assert results[0].timestamp >= results[1].timestamp

        asyncio.run(run())

    def test_periodic_reports(self) -> None:
        _, history = make_registry()

        async def run() -> None:
            summary = Summary.from_partition(["blocked.com"], ["ok.com"])
            saved = await history.save_periodic_report(
                "2026-10-19T10:00:00+00:00", 2, summary, {"blocked.com": {"blocked": True}}
            )
            assert saved.domains_checked == 2
            assert saved.created_at

            await history.save_periodic_report(
                "2026-10-19T11:00:00+00:00", 1, Summary.from_partition([], ["ok.com"])
            )
            reports = await history.recent_reports(limit=1)
            assert [r.timestamp for r in reports] == ["2026-10-19T11:00:00+00:00"]
            assert await history.report_count() == 2

        asyncio.run(run())
