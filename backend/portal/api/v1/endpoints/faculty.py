"""
Faculty API
Class dashboards, rosters, schedules, grades, attendance and announcements
"""
from datetime import datetime, timezone
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from portal.api.deps import (
    get_context_resolver,
    get_grades_service,
    get_profile_store,
    get_records_store,
    get_upstream_client,
)
from portal.core.exceptions import BadRequestError
from portal.core.logging_config import logger
from portal.core.security import AuthSession, require_faculty
from portal.services.academic_context import AcademicContextResolver
from portal.services.grades_service import GRADE_NOT_SENT, GradesService
from portal.services.normalizer import (
    class_matches_period,
    normalize_attendance,
    normalize_class_post,
    normalize_class_record,
    normalize_faculty_summary,
    normalize_roster,
)
from portal.services.profile_store import ProfileStore
from portal.services.records_store import RecordsStore
from portal.services.upstream_client import UpstreamClient

router = APIRouter()


# ==================== Schemas ====================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GradeUpdateRequest(CamelModel):
    enrollment_id: str = Field(..., min_length=1)
    term: Optional[Literal["prelim", "midterm", "finals"]] = None
    grade: Optional[float] = Field(None, ge=0, le=100)
    total_average: Optional[float] = Field(None, ge=0, le=100)
    remarks: Optional[str] = Field(None, max_length=255)


class FinalizeRequest(CamelModel):
    term: Optional[Literal["prelim", "midterm", "finals"]] = None


class AttendanceMarkRequest(CamelModel):
    student_id: str = Field(..., min_length=1)
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    status: Literal["present", "absent", "late", "excused"]
    remarks: Optional[str] = Field(None, max_length=255)


# ==================== Helpers ====================

async def resolve_faculty_id(session: AuthSession, profiles: ProfileStore) -> str:
    """Upstream faculty id linked to the signed-in account"""
    faculty_id = session.claims.get("faculty_id")
    if not faculty_id:
        profile = await profiles.read(session.user_id)
        faculty_id = profile.get("facultyId")
    if not faculty_id:
        raise BadRequestError("No faculty record is linked to this account. Complete onboarding first.")
    return str(faculty_id)


# ==================== Class dashboard ====================

@router.get("/classes")
async def get_faculty_classes(
    semester: Optional[str] = Query(None),
    school_year: Optional[str] = Query(None, alias="schoolYear"),
    session: AuthSession = Depends(require_faculty),
    profiles: ProfileStore = Depends(get_profile_store),
    resolver: AcademicContextResolver = Depends(get_context_resolver),
    upstream: UpstreamClient = Depends(get_upstream_client),
):
    """Classes the faculty member teaches in the resolved academic period"""
    faculty_id = await resolve_faculty_id(session, profiles)
    resolved = await resolver.resolve_period(session.user_id, semester, school_year)
    period = resolved.period

    faculty = await upstream.get_faculty(faculty_id)
    summaries = [c for c in faculty.get("classes") or [] if isinstance(c, dict)]
    in_period = [c for c in summaries if class_matches_period(c, period.semester, period.school_year)]

    details = await upstream.get_batch_class_details([c.get("id") for c in in_period if c.get("id") is not None])
    classes = [normalize_class_record(item) for item in details]

    if len(classes) < len(in_period):
        logger.warning(f"[Faculty] {len(in_period) - len(classes)} of {len(in_period)} classes could not be loaded for {faculty_id}")

    return {
        "success": True,
        "classes": classes,
        "faculty": normalize_faculty_summary(faculty),
        "academicSettings": resolved.to_dict(),
        "metadata": {
            "total": len(classes),
            "requested": len(in_period),
            "fetchedAt": datetime.now(timezone.utc).isoformat(),
        },
    }


@router.get("/classes/{class_id}/students")
async def get_class_students(
    class_id: int,
    session: AuthSession = Depends(require_faculty),
    upstream: UpstreamClient = Depends(get_upstream_client),
):
    details = await upstream.get_class_details(class_id)
    students = normalize_roster(details)
    return {"success": True, "classId": class_id, "students": students, "total": len(students)}


@router.get("/classes/{class_id}/schedule")
async def get_class_schedule(
    class_id: int,
    session: AuthSession = Depends(require_faculty),
    records: RecordsStore = Depends(get_records_store),
):
    schedule = await records.get_class_schedule(class_id)
    return {"success": True, "classId": class_id, "schedule": schedule}


# ==================== Grades ====================

@router.get("/classes/{class_id}/grades")
async def get_class_grades(
    class_id: int,
    session: AuthSession = Depends(require_faculty),
    grades: GradesService = Depends(get_grades_service),
):
    records = await grades.list_grades(class_id)
    return {"success": True, "classId": class_id, "grades": records, "total": len(records)}


@router.post("/classes/{class_id}/grades")
async def save_class_grade(
    class_id: int,
    request: GradeUpdateRequest,
    session: AuthSession = Depends(require_faculty),
    grades: GradesService = Depends(get_grades_service),
):
    """
    Save one grade change for an enrollment.

    An explicit null grade clears the term. Upstream refuses changes to
    finalized enrollments; that refusal is returned as-is.
    """
    result = await grades.save_grade(
        class_id,
        request.enrollment_id,
        term=request.term,
        grade=request.grade if "grade" in request.model_fields_set else GRADE_NOT_SENT,
        total_average=request.total_average,
        remarks=request.remarks,
    )
    return {"success": True, "message": "Grade saved successfully", "data": result}


@router.post("/classes/{class_id}/grades/finalize")
async def finalize_class_grades(
    class_id: int,
    request: Optional[FinalizeRequest] = None,
    session: AuthSession = Depends(require_faculty),
    grades: GradesService = Depends(get_grades_service),
):
    result = await grades.finalize(class_id, term=request.term if request else None)
    return {"success": True, "message": "Grades finalized successfully", "data": result}


# ==================== Attendance ====================

@router.get("/classes/{class_id}/attendance")
async def get_class_attendance(
    class_id: int,
    session: AuthSession = Depends(require_faculty),
    upstream: UpstreamClient = Depends(get_upstream_client),
):
    rows = await upstream.get_class_attendance(class_id)
    attendance = [normalize_attendance(row) for row in rows if isinstance(row, dict)]
    return {"success": True, "classId": class_id, "attendance": attendance}


@router.post("/classes/{class_id}/attendance")
async def mark_class_attendance(
    class_id: int,
    request: AttendanceMarkRequest,
    session: AuthSession = Depends(require_faculty),
    upstream: UpstreamClient = Depends(get_upstream_client),
):
    payload = {
        "class_id": class_id,
        "student_id": request.student_id,
        "date": request.date,
        "status": request.status,
    }
    if request.remarks:
        payload["remarks"] = request.remarks

    result = await upstream.mark_attendance(payload)
    data = normalize_attendance(result) if isinstance(result, dict) and result else normalize_attendance(payload)
    return {"success": True, "message": "Attendance recorded", "data": data}


# ==================== Announcements ====================

@router.get("/classes/{class_id}/announcements")
async def get_class_announcements(
    class_id: int,
    session: AuthSession = Depends(require_faculty),
    upstream: UpstreamClient = Depends(get_upstream_client),
):
    posts = await upstream.get_class_posts(class_id)
    return {
        "success": True,
        "classId": class_id,
        "announcements": [normalize_class_post(post) for post in posts if isinstance(post, dict)],
    }


@router.post("/classes/{class_id}/announcements")
async def create_class_announcement(
    class_id: int,
    content: str = Form(..., min_length=1),
    title: str = Form("Announcement"),
    attachments: List[UploadFile] = File(default=[]),
    session: AuthSession = Depends(require_faculty),
    upstream: UpstreamClient = Depends(get_upstream_client),
):
    """Post an announcement; attachments are forwarded as multipart files"""
    files = []
    for upload in attachments:
        files.append((
            "attachments[]",
            (upload.filename or "attachment", await upload.read(), upload.content_type or "application/octet-stream"),
        ))

    result = await upstream.create_class_post(
        {"class_id": class_id, "title": title, "content": content, "type": "announcement"},
        files=files,
    )
    data = normalize_class_post(result) if isinstance(result, dict) else None
    return {"success": True, "message": "Announcement posted", "data": data}


# ==================== Faculty profile ====================

@router.get("/{faculty_id}")
async def get_faculty(
    faculty_id: str,
    session: AuthSession = Depends(require_faculty),
    upstream: UpstreamClient = Depends(get_upstream_client),
):
    faculty = await upstream.get_faculty(faculty_id)
    return {
        "success": True,
        "faculty": normalize_faculty_summary(faculty),
        "classCount": len(faculty.get("classes") or []),
    }
