"""
Academic Periods API
Selectable (school year, semester) pairs and the caller's current choice
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from portal.api.deps import get_context_resolver, get_profile_store, get_records_store
from portal.core.exceptions import BadRequestError
from portal.core.logging_config import logger
from portal.core.security import AuthSession, get_current_session
from portal.services.academic_context import AcademicContextResolver
from portal.services.profile_store import ProfileStore
from portal.services.records_store import RecordsStore

router = APIRouter()


# ==================== Schemas ====================

class AcademicPeriodRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    semester: str = Field(..., min_length=1)
    school_year: str = Field(..., min_length=4)


# ==================== Endpoints ====================

@router.get("/academic-periods")
async def list_academic_periods(
    session: AuthSession = Depends(get_current_session),
    resolver: AcademicContextResolver = Depends(get_context_resolver),
    records: RecordsStore = Depends(get_records_store),
):
    recorded = await records.list_enrollment_periods()
    periods = await resolver.list_periods(recorded)
    try:
        current = (await resolver.resolve_period(session.user_id)).to_dict()
    except BadRequestError:
        current = None
    return {
        "success": True,
        "data": periods["periods"],
        "semesters": periods["semesters"],
        "schoolYears": periods["schoolYears"],
        "current": current,
    }


@router.post("/user/academic-period")
async def set_academic_period(
    request: AcademicPeriodRequest,
    session: AuthSession = Depends(get_current_session),
    profiles: ProfileStore = Depends(get_profile_store),
):
    """Remember the caller's chosen period on their profile"""
    period = AcademicContextResolver.period_from(request.semester, request.school_year)
    if period is None:
        raise BadRequestError("Invalid academic period", details={
            "semester": request.semester,
            "schoolYear": request.school_year,
        })

    await profiles.write(session.user_id, period.to_dict())
    logger.info(f"[AcademicContext] {session.user_id} selected {period.semester}/{period.school_year}")
    return {"success": True, "message": "Academic period updated", "data": period.to_dict()}
