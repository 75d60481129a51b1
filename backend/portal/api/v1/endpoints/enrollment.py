"""
Enrollment API
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from portal.api.deps import get_context_resolver, get_profile_store, get_upstream_client
from portal.core.config import settings
from portal.core.exceptions import BadRequestError
from portal.core.security import AuthSession, get_current_session
from portal.services.academic_context import AcademicContextResolver
from portal.services.normalizer import normalize_enrollment_status
from portal.services.profile_store import ProfileStore
from portal.services.upstream_client import UpstreamClient

router = APIRouter()


@router.get("/enrollment-status")
async def get_enrollment_status(
    student_id: Optional[str] = Query(None, alias="studentId"),
    semester: Optional[str] = Query(None),
    school_year: Optional[str] = Query(None, alias="schoolYear"),
    session: AuthSession = Depends(get_current_session),
    profiles: ProfileStore = Depends(get_profile_store),
    resolver: AcademicContextResolver = Depends(get_context_resolver),
    upstream: UpstreamClient = Depends(get_upstream_client),
):
    """
    Enrollment status of a student for the resolved academic period.

    ``studentId`` defaults to the student linked to the caller's profile.
    """
    if not student_id:
        profile = await profiles.read(session.user_id)
        student_id = profile.get("studentId") or session.claims.get("student_id")
    if not student_id:
        raise BadRequestError("Missing studentId")

    resolved = await resolver.resolve_period(session.user_id, semester, school_year)
    period = resolved.period

    records = await upstream.get_student_enrollments(str(student_id), period.semester, period.school_year)
    status = normalize_enrollment_status(
        records,
        period.semester,
        period.school_year,
        settings.VALID_ENROLLMENT_STATUSES,
    )

    return {
        "success": True,
        **status,
        "studentId": str(student_id),
        "academicSettings": resolved.to_dict(),
    }
