"""
Student Subjects Service - a student's enrolled subjects for one academic period.

Seats and grades come from upstream class enrollments; subject, section and
schedule fields come from the (cached) class details of each seat.
"""

from typing import Any, Dict, List

from portal.core.logging_config import logger
from portal.services.academic_context import AcademicPeriod
from portal.services.normalizer import class_matches_period, normalize_student_subject
from portal.services.upstream_client import UpstreamClient


def _is_active(seat: Dict[str, Any]) -> bool:
    # Upstream marks dropped seats with status false; seats without a status are kept
    status = seat.get("status", True)
    if isinstance(status, str):
        return status.strip().lower() not in {"0", "false", "dropped", "inactive"}
    return bool(status)


class StudentSubjectsService:
    def __init__(self, upstream: UpstreamClient):
        self.upstream = upstream

    async def list_subjects(self, student_id: str, period: AcademicPeriod) -> List[Dict[str, Any]]:
        """
        Enrolled subjects of ``student_id`` in ``period``, newest seat first.

        Seats whose class details cannot be loaded are left out, the same way
        batch class fetches drop failures.
        """
        seats = [
            seat for seat in await self.upstream.get_student_class_enrollments(student_id)
            if isinstance(seat, dict) and seat.get("class_id") is not None and _is_active(seat)
        ]

        class_ids = list(dict.fromkeys(seat["class_id"] for seat in seats))
        details = await self.upstream.get_batch_class_details(class_ids)
        by_id = {str(item.get("id")): item for item in details if isinstance(item, dict)}

        subjects = []
        for seat in seats:
            class_details = by_id.get(str(seat["class_id"]))
            if class_details is None:
                continue
            if not class_matches_period(class_details, period.semester, period.school_year):
                continue
            subjects.append(normalize_student_subject(seat, class_details))

        subjects.sort(key=lambda subject: str(subject.get("enrolledAt") or ""), reverse=True)
        logger.info(
            f"[Subjects] student={student_id} period={period.semester}/{period.school_year} "
            f"seats={len(seats)} subjects={len(subjects)}"
        )
        return subjects
