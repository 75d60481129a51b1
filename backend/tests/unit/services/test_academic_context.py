"""
Unit Tests for the Academic Context Resolver
"""
import pytest

from portal.core.exceptions import BadRequestError
from portal.services.academic_context import (
    SOURCE_PROFILE,
    SOURCE_QUERY,
    SOURCE_UPSTREAM,
    AcademicContextResolver,
    AcademicPeriod,
    wait_pending,
)

from mocks.upstream_stub import InMemoryProfileStore, general_settings


class TestResolvePeriod:

    @pytest.mark.asyncio
    async def test_query_params_win(self, upstream, upstream_stub):
        profiles = InMemoryProfileStore({"u1": {"semester": "2", "schoolYear": "2024-2025"}})
        resolver = AcademicContextResolver(upstream, profiles)

        resolved = await resolver.resolve_period("u1", "1st", "2025")

        assert resolved.period == AcademicPeriod("1", "2025")
        assert resolved.source == SOURCE_QUERY
        assert upstream_stub.requests == []

    @pytest.mark.asyncio
    async def test_query_period_is_written_back(self, upstream):
        profiles = InMemoryProfileStore({"u1": {"semester": "2", "schoolYear": "2024-2025"}})
        resolver = AcademicContextResolver(upstream, profiles)

        await resolver.resolve_period("u1", "1", "2025-2026")
        await wait_pending()

        assert profiles.writes == [("u1", {"semester": "1", "schoolYear": "2025-2026"})]

    @pytest.mark.asyncio
    async def test_same_period_is_not_rewritten(self, upstream):
        profiles = InMemoryProfileStore({"u1": {"semester": "1", "schoolYear": "2025-2026"}})
        resolver = AcademicContextResolver(upstream, profiles)

        await resolver.resolve_period("u1", "1", "2025-2026")
        await wait_pending()

        assert profiles.writes == []

    @pytest.mark.asyncio
    async def test_failed_write_back_does_not_fail_request(self, upstream):
        class ReadOnlyStore(InMemoryProfileStore):
            async def write(self, user_id, patch):
                raise RuntimeError("read-only replica")

        resolver = AcademicContextResolver(upstream, ReadOnlyStore())

        resolved = await resolver.resolve_period("u1", "2", "2025")
        await wait_pending()

        assert resolved.period == AcademicPeriod("2", "2025")

    @pytest.mark.asyncio
    async def test_profile_used_without_query(self, upstream, upstream_stub):
        profiles = InMemoryProfileStore({"u1": {"semester": "summer", "schoolYear": "2024-2025"}})
        resolver = AcademicContextResolver(upstream, profiles)

        resolved = await resolver.resolve_period("u1")

        assert resolved.period == AcademicPeriod("summer", "2024-2025")
        assert resolved.source == SOURCE_PROFILE
        assert upstream_stub.requests == []

    @pytest.mark.asyncio
    async def test_half_query_falls_back(self, upstream):
        profiles = InMemoryProfileStore({"u1": {"semester": "2", "schoolYear": "2024-2025"}})
        resolver = AcademicContextResolver(upstream, profiles)

        resolved = await resolver.resolve_period("u1", semester="1")

        assert resolved.source == SOURCE_PROFILE

    @pytest.mark.asyncio
    async def test_upstream_settings_as_last_resort(self, upstream, upstream_stub):
        upstream_stub.add("GET", "/api/general-settings", body=general_settings("2", "2025-2026"))
        resolver = AcademicContextResolver(upstream, InMemoryProfileStore())

        resolved = await resolver.resolve_period("u1")

        assert resolved.period == AcademicPeriod("2", "2025-2026")
        assert resolved.source == SOURCE_UPSTREAM

    @pytest.mark.asyncio
    async def test_unreadable_profile_falls_through_to_upstream(self, upstream, upstream_stub):
        upstream_stub.add("GET", "/api/general-settings", body=general_settings())
        resolver = AcademicContextResolver(upstream, InMemoryProfileStore(fail_reads=True))

        resolved = await resolver.resolve_period("u1")

        assert resolved.source == SOURCE_UPSTREAM

    @pytest.mark.asyncio
    async def test_nothing_resolves(self, upstream, upstream_stub):
        upstream_stub.add("GET", "/api/general-settings", body={"data": {}})
        resolver = AcademicContextResolver(upstream, InMemoryProfileStore())

        with pytest.raises(BadRequestError) as exc_info:
            await resolver.resolve_period("u1")

        assert exc_info.value.message == "Missing academic period"

    @pytest.mark.asyncio
    async def test_invalid_query_semester(self, upstream):
        resolver = AcademicContextResolver(upstream, InMemoryProfileStore())

        with pytest.raises(BadRequestError):
            await resolver.resolve_period("u1", "fourth", "2025")


class TestListPeriods:

    @pytest.mark.asyncio
    async def test_merges_upstream_and_recorded_periods(self, upstream, upstream_stub):
        upstream_stub.add("GET", "/api/general-settings", body=general_settings())
        resolver = AcademicContextResolver(upstream, InMemoryProfileStore())

        result = await resolver.list_periods([("2023-2024", "2nd")])

        assert result["schoolYears"] == ["2025-2026", "2024-2025"]
        assert [p["schoolYear"] for p in result["periods"]] == ["2025-2026", "2024-2025", "2023-2024"]
        assert result["periods"][-1]["semesters"] == ["2"]

    @pytest.mark.asyncio
    async def test_settings_fetched_once(self, upstream, upstream_stub):
        upstream_stub.add("GET", "/api/general-settings", body=general_settings())
        resolver = AcademicContextResolver(upstream, InMemoryProfileStore())

        await resolver.list_periods()
        await resolver.resolve_period("u1")

        assert len(upstream_stub.calls("GET", "/api/general-settings")) == 1
