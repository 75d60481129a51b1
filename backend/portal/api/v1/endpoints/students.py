"""
Student API
Student number validation and profile metadata
"""
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from portal.api.deps import get_profile_store, get_records_store
from portal.core.exceptions import BadRequestError
from portal.core.security import AuthSession, get_current_session
from portal.services.academic_context import AcademicContextResolver
from portal.services.profile_store import ProfileStore
from portal.services.records_store import RecordsStore

router = APIRouter()


# ==================== Schemas ====================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StudentValidationRequest(CamelModel):
    email: EmailStr
    student_id: Union[int, str]


class MetadataUpdateRequest(CamelModel):
    student_id: Optional[str] = Field(None, max_length=32)
    semester: Optional[str] = None
    school_year: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


# ==================== Endpoints ====================

@router.post("/validate")
async def validate_student(
    request: StudentValidationRequest,
    session: AuthSession = Depends(get_current_session),
    records: RecordsStore = Depends(get_records_store),
):
    """Check a student number against the local records (used during onboarding)"""
    result = await records.validate_student(request.email, str(request.student_id))
    return {"success": True, **result}


@router.post("/update-metadata")
async def update_metadata(
    request: MetadataUpdateRequest,
    session: AuthSession = Depends(get_current_session),
    profiles: ProfileStore = Depends(get_profile_store),
):
    patch: Dict[str, Any] = {}
    if request.student_id:
        patch["studentId"] = request.student_id.strip()

    if request.semester or request.school_year:
        period = AcademicContextResolver.period_from(request.semester, request.school_year)
        if period is None:
            raise BadRequestError("Both a valid semester and school year are required")
        patch.update(period.to_dict())

    if request.metadata:
        patch["metadata"] = request.metadata

    if not patch:
        raise BadRequestError("No fields to update")

    profile = await profiles.write(session.user_id, patch)
    return {"success": True, "message": "Profile updated", "profile": profile}
