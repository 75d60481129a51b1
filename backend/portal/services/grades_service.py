"""
Grades Service - grade entry and finalization against upstream enrollments.

Upstream owns the finalized lock: once an enrollment is finalized it rejects
grade changes, and that rejection is passed to the caller unchanged.
"""

from typing import Any, Dict, List, Optional

from portal.core.exceptions import BadRequestError, BatchWriteError
from portal.core.logging_config import logger
from portal.services.normalizer import normalize_enrollment, to_boolean
from portal.services.upstream_client import UpstreamClient, settle_all

TERM_FIELDS = {
    "prelim": "prelim_grade",
    "midterm": "midterm_grade",
    "finals": "finals_grade",
}

# A grade that was not sent at all, as opposed to an explicit null that clears it
GRADE_NOT_SENT = object()


def build_grade_update(
    term: Optional[str] = None,
    grade: Any = GRADE_NOT_SENT,
    total_average: Optional[float] = None,
    remarks: Optional[str] = None,
) -> Dict[str, Any]:
    """Partial enrollment payload for one grade change"""
    payload: Dict[str, Any] = {}

    if term is not None:
        if term not in TERM_FIELDS:
            raise BadRequestError(f"Invalid term: {term}", details={"term": term})
        if grade is GRADE_NOT_SENT:
            raise BadRequestError("Missing grade for term")
        payload[TERM_FIELDS[term]] = grade

    if total_average is not None:
        payload["total_average"] = total_average
    if remarks is not None:
        payload["remarks"] = remarks

    if not payload:
        raise BadRequestError("No fields to update")
    return payload


class GradesService:
    def __init__(self, upstream: UpstreamClient):
        self.upstream = upstream

    async def list_grades(self, class_id: Any) -> List[Dict[str, Any]]:
        enrollments = await self.upstream.get_class_enrollments(class_id)
        return [normalize_enrollment(item, class_id) for item in enrollments if isinstance(item, dict)]

    async def save_grade(
        self,
        class_id: Any,
        enrollment_id: str,
        term: Optional[str] = None,
        grade: Any = GRADE_NOT_SENT,
        total_average: Optional[float] = None,
        remarks: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = build_grade_update(term, grade, total_average, remarks)
        logger.info(f"[Grades] class={class_id} enrollment={enrollment_id} fields={sorted(payload)}")

        result = await self.upstream.update_class_enrollment(enrollment_id, payload)
        record = normalize_enrollment(result, class_id) if isinstance(result, dict) and result else None
        return {"enrollmentId": enrollment_id, "updated": payload, "record": record}

    async def finalize(self, class_id: Any, term: Optional[str] = None) -> Dict[str, Any]:
        """
        Mark every not-yet-finalized enrollment of the class as finalized.

        With a term, that term is marked submitted in the same write. Writes
        run in parallel; if any fail, BatchWriteError lists the ids that were
        not finalized.
        """
        if term is not None and term not in TERM_FIELDS:
            raise BadRequestError(f"Invalid term: {term}", details={"term": term})

        enrollments = await self.upstream.get_class_enrollments(class_id)
        pending = [
            item["id"] for item in enrollments
            if isinstance(item, dict) and item.get("id") is not None
            and not to_boolean(item.get("is_grades_finalized"))
        ]

        payload: Dict[str, Any] = {"is_grades_finalized": True}
        if term is not None:
            payload[f"is_{term}_submitted"] = True
        results = await settle_all(
            pending,
            lambda enrollment_id: self.upstream.update_class_enrollment(enrollment_id, payload),
        )

        failed = [result for result in results if not result.ok]
        for result in failed:
            logger.warning(f"[Grades] Finalize failed for enrollment {result.key}: {result.error}")

        succeeded = len(results) - len(failed)
        if failed:
            raise BatchWriteError(
                f"{len(failed)} of {len(results)} enrollments could not be finalized",
                failed_ids=[str(result.key) for result in failed],
                succeeded=succeeded,
            )

        logger.info(f"[Grades] Finalized {succeeded} enrollments for class {class_id}")
        return {
            "classId": class_id,
            "term": term,
            "finalized": succeeded,
            "alreadyFinalized": len(enrollments) - len(pending),
        }
