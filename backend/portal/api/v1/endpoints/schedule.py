"""
Schedule API
Weekly timetable of the signed-in student
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from portal.api.deps import get_context_resolver, get_profile_store, get_records_store
from portal.core.exceptions import BadRequestError
from portal.core.security import AuthSession, get_current_session
from portal.services.academic_context import AcademicContextResolver
from portal.services.profile_store import ProfileStore
from portal.services.records_store import RecordsStore

router = APIRouter()


@router.get("")
async def get_schedule(
    student_id: Optional[str] = Query(None, alias="studentId"),
    semester: Optional[str] = Query(None),
    school_year: Optional[str] = Query(None, alias="schoolYear"),
    session: AuthSession = Depends(get_current_session),
    profiles: ProfileStore = Depends(get_profile_store),
    resolver: AcademicContextResolver = Depends(get_context_resolver),
    records: RecordsStore = Depends(get_records_store),
):
    if not student_id:
        student_id = (await profiles.read(session.user_id)).get("studentId")
    student_number = str(student_id or "").strip()
    if not student_number.isdigit():
        raise BadRequestError("No student record is linked to this account")

    resolved = await resolver.resolve_period(session.user_id, semester, school_year)
    schedule = await records.get_student_schedule(
        int(student_number), resolved.period.semester, resolved.period.school_year
    )
    return {
        "success": True,
        "schedule": schedule,
        "academicSettings": resolved.to_dict(),
    }
