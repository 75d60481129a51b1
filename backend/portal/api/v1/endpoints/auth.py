"""
Auth API
Session introspection and first-login onboarding
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from portal.api.deps import get_profile_store, get_records_store, get_upstream_client
from portal.core.exceptions import BadRequestError, NotFoundError
from portal.core.logging_config import logger
from portal.core.security import ROLE_FACULTY, ROLE_STUDENT, AuthSession, get_current_session
from portal.services.profile_store import ProfileStore
from portal.services.records_store import RecordsStore
from portal.services.upstream_client import UpstreamClient

router = APIRouter()


# ==================== Schemas ====================

class OnboardingRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    role: Optional[str] = Field(None, pattern="^(student|faculty)$")
    student_id: Optional[str] = Field(None, max_length=32)


# ==================== Endpoints ====================

@router.get("/session")
async def get_session(
    session: AuthSession = Depends(get_current_session),
    profiles: ProfileStore = Depends(get_profile_store),
):
    """Current identity plus the stored profile"""
    profile = await profiles.read(session.user_id)
    return {
        "success": True,
        "user": {
            "id": session.user_id,
            "email": session.email,
            "role": session.role,
        },
        "profile": profile,
        "isOnboarded": bool(profile.get("facultyId") or profile.get("studentId")),
    }


@router.post("/onboarding")
async def complete_onboarding(
    request: OnboardingRequest,
    session: AuthSession = Depends(get_current_session),
    profiles: ProfileStore = Depends(get_profile_store),
    upstream: UpstreamClient = Depends(get_upstream_client),
    records: RecordsStore = Depends(get_records_store),
):
    """
    Link the signed-in account to its upstream faculty or student record.

    The record is looked up by the session email. Faculty fall back to the
    local faculty table when upstream has no match.
    """
    if not session.email:
        raise BadRequestError("Session has no email address")

    role = request.role or session.role
    patch = {"role": role}

    if role == ROLE_FACULTY:
        faculty = await upstream.find_faculty_by_email(session.email)
        if faculty is None:
            faculty = await records.find_faculty_by_email(session.email)
        if faculty is None:
            logger.log_auth_event("onboarding", success=False, reason="faculty not found")
            raise NotFoundError("faculty", session.email)
        patch["facultyId"] = str(faculty["id"])
    else:
        role = ROLE_STUDENT
        patch["role"] = role
        student = await upstream.find_student_by_email(session.email)
        if student is None and request.student_id:
            student = await upstream.get_student(request.student_id)
        if student is None:
            logger.log_auth_event("onboarding", success=False, reason="student not found")
            raise NotFoundError("student", session.email)
        patch["studentId"] = str(student.get("id"))

    profile = await profiles.write(session.user_id, patch)
    logger.log_auth_event("onboarding", success=True)
    logger.info(f"[Profile] Onboarded {session.user_id} as {role}")

    return {"success": True, "message": "Onboarding complete", "profile": profile}
