"""
Student Views API
Enrolled subjects per academic period and the curriculum checklist
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from portal.api.deps import (
    get_context_resolver,
    get_profile_store,
    get_records_store,
    get_student_subjects_service,
)
from portal.core.exceptions import BadRequestError, NotFoundError
from portal.core.logging_config import logger
from portal.core.security import AuthSession, get_current_session
from portal.services.academic_context import AcademicContextResolver
from portal.services.normalizer import summarize_checklist
from portal.services.profile_store import ProfileStore
from portal.services.records_store import RecordsStore
from portal.services.student_subjects_service import StudentSubjectsService

router = APIRouter()


async def resolve_student_id(
    student_id: Optional[str],
    session: AuthSession,
    profiles: ProfileStore,
) -> str:
    """Explicit studentId, else the student linked to the caller"""
    if not student_id:
        profile = await profiles.read(session.user_id)
        student_id = profile.get("studentId") or session.claims.get("student_id")
    student_id = str(student_id or "").strip()
    if not student_id:
        raise BadRequestError("Missing studentId")
    return student_id


@router.get("/subjects")
async def get_student_subjects(
    student_id: Optional[str] = Query(None, alias="studentId"),
    semester: Optional[str] = Query(None),
    school_year: Optional[str] = Query(None, alias="schoolYear"),
    session: AuthSession = Depends(get_current_session),
    profiles: ProfileStore = Depends(get_profile_store),
    resolver: AcademicContextResolver = Depends(get_context_resolver),
    service: StudentSubjectsService = Depends(get_student_subjects_service),
):
    """Subjects the student sits in for the resolved academic period, with grades"""
    student_id = await resolve_student_id(student_id, session, profiles)
    resolved = await resolver.resolve_period(session.user_id, semester, school_year)

    subjects = await service.list_subjects(student_id, resolved.period)
    return {
        "success": True,
        "studentId": student_id,
        "subjects": subjects,
        "total": len(subjects),
        "academicSettings": resolved.to_dict(),
    }


@router.get("/checklist")
async def get_curriculum_checklist(
    student_id: Optional[str] = Query(None, alias="studentId"),
    session: AuthSession = Depends(get_current_session),
    profiles: ProfileStore = Depends(get_profile_store),
    records: RecordsStore = Depends(get_records_store),
):
    student_id = await resolve_student_id(student_id, session, profiles)
    if not student_id.isdigit():
        raise BadRequestError("Invalid Student ID format. Please enter numbers only.")

    checklist = await records.get_curriculum_checklist(int(student_id))
    if checklist is None:
        raise NotFoundError("student", student_id)

    statistics = summarize_checklist(checklist)
    logger.info(
        f"[Checklist] student={student_id} subjects={statistics['totalSubjects']} "
        f"finished={statistics['finishedSubjects']}"
    )
    return {"success": True, "studentId": student_id, "checklist": checklist, "statistics": statistics}
