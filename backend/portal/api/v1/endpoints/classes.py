"""
Class API
Class details, settings updates and CSV exports
"""
import csv
import io
from typing import Any, Dict, List, Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from portal.api.deps import get_class_settings_service, get_grades_service, get_upstream_client
from portal.core.exceptions import BadRequestError
from portal.core.logging_config import logger
from portal.core.security import AuthSession, get_current_session, require_faculty
from portal.services.class_settings_service import ClassSettingsService, settings_patch
from portal.services.grades_service import GradesService
from portal.services.normalizer import normalize_attendance, normalize_class_record, normalize_roster
from portal.services.upstream_client import UpstreamClient

router = APIRouter()


# ==================== Schemas ====================

class ClassSettingsUpdateRequest(BaseModel):
    """Partial ClassSettings; only the leaves present are changed"""
    settings: Dict[str, Any] = Field(default_factory=dict)


# ==================== Class details ====================

@router.get("/{class_id}")
async def get_class(
    class_id: int,
    session: AuthSession = Depends(get_current_session),
    upstream: UpstreamClient = Depends(get_upstream_client),
):
    details = await upstream.get_class_details(class_id)
    return {"success": True, "class": normalize_class_record(details)}


@router.patch("/{class_id}")
async def update_class_settings(
    class_id: int,
    request: ClassSettingsUpdateRequest,
    session: AuthSession = Depends(require_faculty),
    service: ClassSettingsService = Depends(get_class_settings_service),
):
    """
    Update the visual/feature settings of a class.

    The class is re-read from upstream, the partial settings are merged in,
    and the complete record is written back.
    """
    if not any(settings_patch(request.settings).values()):
        raise BadRequestError("No settings to update")

    result = await service.update_class_settings(class_id, request.settings)
    return {
        "success": True,
        "message": "Class settings updated successfully",
        "classId": class_id,
        "settings": result["settings"],
    }


# ==================== Export ====================

def _to_csv(header: List[str], rows: List[List[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return buffer.getvalue()


@router.get("/{class_id}/export")
async def export_class(
    class_id: int,
    type: Literal["roster", "grades", "attendance"] = Query("roster"),
    session: AuthSession = Depends(require_faculty),
    upstream: UpstreamClient = Depends(get_upstream_client),
    grades: GradesService = Depends(get_grades_service),
):
    """Download the class roster, grade sheet or attendance log as CSV"""
    if type == "roster":
        roster = normalize_roster(await upstream.get_class_details(class_id))
        content = _to_csv(
            ["Student Number", "Last Name", "First Name", "Middle Name", "Email"],
            [[s["studentNumber"], s["lastName"], s["firstName"], s["middleName"], s["email"]] for s in roster],
        )
    elif type == "grades":
        records = await grades.list_grades(class_id)
        content = _to_csv(
            ["Student ID", "Student Name", "Prelim", "Midterm", "Finals", "Average", "Remarks", "Finalized"],
            [
                [
                    r["studentId"], r["studentName"], r["prelimGrade"], r["midtermGrade"],
                    r["finalsGrade"], r["totalAverage"], r["remarks"], "yes" if r["isFinalized"] else "no",
                ]
                for r in records
            ],
        )
    else:
        rows = [normalize_attendance(row) for row in await upstream.get_class_attendance(class_id) if isinstance(row, dict)]
        content = _to_csv(
            ["Date", "Student ID", "Status", "Remarks"],
            [[a["date"], a["studentId"], a["status"], a["remarks"]] for a in rows],
        )

    filename = f"class-{class_id}-{type}.csv"
    logger.info(f"[Export] {filename} for {session.user_id}")
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
