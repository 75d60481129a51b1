"""
Debug API
Only mounted when DEBUG is enabled
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from portal.api.deps import get_profile_store, get_records_store
from portal.core.exceptions import BadRequestError
from portal.core.security import AuthSession, get_current_session
from portal.services.profile_store import ProfileStore
from portal.services.records_store import RecordsStore

router = APIRouter()


@router.get("/session")
async def debug_session(
    session: AuthSession = Depends(get_current_session),
    profiles: ProfileStore = Depends(get_profile_store),
):
    return {
        "success": True,
        "userId": session.user_id,
        "role": session.role,
        "email": session.email,
        "claims": session.claims,
        "profile": await profiles.read(session.user_id),
    }


@router.get("/enrollment")
async def debug_enrollment(
    student_id: Optional[str] = Query(None, alias="studentId"),
    session: AuthSession = Depends(get_current_session),
    profiles: ProfileStore = Depends(get_profile_store),
    records: RecordsStore = Depends(get_records_store),
):
    """Local enrollment history of a student"""
    if not student_id:
        student_id = (await profiles.read(session.user_id)).get("studentId")
    student_number = str(student_id or "").strip()
    if not student_number.isdigit():
        raise BadRequestError("Missing or invalid studentId")

    student = await records.find_student(int(student_number))
    enrollments = await records.list_student_enrollments(int(student_number))
    return {
        "success": True,
        "studentId": student_number,
        "studentFound": student is not None,
        "enrollments": enrollments,
        "total": len(enrollments),
    }
