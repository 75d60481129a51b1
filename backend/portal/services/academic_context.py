"""
Academic Context Resolver

Works out which (semester, school year) a request is about:

1. ``semester`` and ``schoolYear`` query parameters, when both are given
2. the caller's stored profile, when it holds both
3. the upstream institution-wide current settings

A period chosen through the query that differs from the profile is written
back to the profile in the background so later requests can use source 2.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from portal.core.exceptions import BadRequestError
from portal.core.logging_config import logger
from portal.services.normalizer import (
    group_periods,
    normalize_academic_settings,
    normalize_school_year,
    normalize_semester,
)
from portal.services.profile_store import ProfileStore
from portal.services.upstream_client import UpstreamClient

SOURCE_QUERY = "query"
SOURCE_PROFILE = "profile"
SOURCE_UPSTREAM = "upstream"

# Background profile writes still running
_pending_writes: Set[asyncio.Task] = set()


@dataclass(frozen=True)
class AcademicPeriod:
    semester: str
    school_year: str

    def to_dict(self) -> Dict[str, str]:
        return {"semester": self.semester, "schoolYear": self.school_year}


@dataclass(frozen=True)
class ResolvedPeriod:
    period: AcademicPeriod
    source: str

    def to_dict(self) -> Dict[str, str]:
        return {**self.period.to_dict(), "source": self.source}


async def wait_pending() -> None:
    """Wait for background profile writes (shutdown and tests)"""
    if _pending_writes:
        await asyncio.gather(*list(_pending_writes), return_exceptions=True)


class AcademicContextResolver:
    """Resolves the AcademicPeriod that scopes a request"""

    def __init__(self, upstream: UpstreamClient, profiles: ProfileStore):
        self.upstream = upstream
        self.profiles = profiles
        self._settings: Optional[Dict[str, Any]] = None

    async def current_settings(self) -> Dict[str, Any]:
        """Normalized upstream academic settings, fetched once per resolver"""
        if self._settings is None:
            self._settings = normalize_academic_settings(await self.upstream.get_current_settings())
        return self._settings

    async def resolve_period(
        self,
        user_id: Optional[str],
        semester: Optional[str] = None,
        school_year: Optional[str] = None,
    ) -> ResolvedPeriod:
        query_semester = normalize_semester(semester)
        query_year = normalize_school_year(school_year)
        if semester not in (None, "") and query_semester is None:
            raise BadRequestError(f"Invalid semester: {semester}", details={"semester": semester})
        if school_year not in (None, "") and query_year is None:
            raise BadRequestError(f"Invalid school year: {school_year}", details={"schoolYear": school_year})

        profile = await self._read_profile(user_id)
        profile_period = (
            self.period_from(profile.get("semester"), profile.get("schoolYear")) if profile else None
        )

        if query_semester and query_year:
            period = AcademicPeriod(query_semester, query_year)
            if user_id and profile is not None and period != profile_period:
                self._remember(user_id, period)
            return ResolvedPeriod(period, SOURCE_QUERY)

        if profile_period is not None:
            return ResolvedPeriod(profile_period, SOURCE_PROFILE)

        settings = await self.current_settings()
        upstream_period = self.period_from(settings.get("semester"), settings.get("schoolYear"))
        if upstream_period is not None:
            return ResolvedPeriod(upstream_period, SOURCE_UPSTREAM)

        raise BadRequestError("Missing academic period")

    async def list_periods(self, recorded: Iterable[Tuple[Any, Any]] = ()) -> Dict[str, Any]:
        """
        Valid periods: every upstream semester for every upstream school year,
        plus periods that appear in local enrollment history.
        """
        settings = await self.current_settings()
        pairs: List[Tuple[Any, Any]] = [
            (year, semester)
            for year in settings["schoolYears"]
            for semester in settings["semesters"]
        ]
        pairs.extend(recorded)
        return {
            "periods": group_periods(pairs),
            "semesters": settings["semesters"],
            "schoolYears": settings["schoolYears"],
        }

    @staticmethod
    def period_from(semester: Any, school_year: Any) -> Optional[AcademicPeriod]:
        sem, year = normalize_semester(semester), normalize_school_year(school_year)
        if sem and year:
            return AcademicPeriod(sem, year)
        return None

    async def _read_profile(self, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Profile of the caller; None when it could not be read"""
        if not user_id:
            return {}
        try:
            return await self.profiles.read(user_id) or {}
        except Exception as e:
            # The profile is a fallback source only; continue without it
            logger.warning(f"[AcademicContext] Profile read failed for {user_id}: {type(e).__name__}: {e}")
            return None

    def _remember(self, user_id: str, period: AcademicPeriod) -> None:
        task = asyncio.create_task(self._write_profile(user_id, period))
        _pending_writes.add(task)
        task.add_done_callback(_pending_writes.discard)

    async def _write_profile(self, user_id: str, period: AcademicPeriod) -> None:
        try:
            await self.profiles.write(user_id, period.to_dict())
            logger.debug(f"[AcademicContext] Remembered {period.semester}/{period.school_year} for {user_id}")
        except Exception as e:
            logger.warning(f"[AcademicContext] Could not remember period for {user_id}: {type(e).__name__}: {e}")
