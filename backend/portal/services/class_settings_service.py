"""
Class Settings Service

The upstream class update is a full-record PUT: any field left out of the
payload is cleared. Settings changes therefore go read -> merge -> write:

1. read the current class (cache-aware)
2. copy every required class field from it unchanged
3. overlay the caller's settings leaves on the stored settings
4. PUT the whole record
5. drop the cached class so the next read is fresh
"""

from typing import Any, Dict, List, Mapping

from portal.core.logging_config import logger
from portal.services.cache_service import CacheService
from portal.services.normalizer import (
    FEATURE_FIELDS,
    VISUAL_FIELDS,
    is_shs_class,
    normalize_class_settings,
    to_boolean,
    upstream_class_settings,
)
from portal.services.upstream_client import UpstreamClient

SETTINGS_GROUPS = (("visual", VISUAL_FIELDS), ("features", FEATURE_FIELDS))


def _dict(value: Any) -> Mapping:
    return value if isinstance(value, Mapping) else {}


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def settings_patch(partial: Mapping) -> Dict[str, Dict[str, Any]]:
    """
    Pick the settings leaves present in ``partial``.

    Leaves may be nested under "visual"/"features" or given flat, in
    camelCase or snake_case. Returns a snake_case tree holding only the
    leaves the caller supplied.
    """
    patch: Dict[str, Dict[str, Any]] = {"visual": {}, "features": {}}
    for group_name, fields in SETTINGS_GROUPS:
        group = _dict(partial.get(group_name))
        for camel, snake in fields.items():
            for source in (group, partial):
                if snake in source:
                    patch[group_name][snake] = source[snake]
                    break
                if camel in source:
                    patch[group_name][snake] = source[camel]
                    break
    return patch


def merge_settings(current: Any, partial: Mapping) -> Dict[str, Dict[str, Any]]:
    """Stored settings with the caller's leaves overlaid"""
    merged = upstream_class_settings(current)
    for group_name, leaves in settings_patch(partial).items():
        for snake, value in leaves.items():
            merged[group_name][snake] = to_boolean(value) if group_name == "features" else value
    return merged


def _first(items: Any) -> Mapping:
    if isinstance(items, list):
        return _dict(items[0]) if items else {}
    return _dict(items)


def _ids(items: Any) -> List[Any]:
    if not isinstance(items, list):
        items = [items] if isinstance(items, Mapping) else []
    ids = []
    for item in items:
        value = item.get("id") if isinstance(item, Mapping) else item
        if value is not None:
            ids.append(value)
    return ids


def build_class_update_payload(current: Mapping, partial_settings: Mapping) -> Dict[str, Any]:
    """
    Full upstream update payload for a settings change.

    Room and schedule ids come from the first schedule row. Non-SHS classes
    send the SHS fields as None; SHS classes send blank values as None too.
    """
    class_info = _dict(current.get("class_information"))
    shs_info = _dict(current.get("shs_information"))
    course_info = _dict(current.get("course_information"))
    faculty_info = _dict(current.get("faculty_information"))
    first_schedule = _first(_dict(current.get("schedule_information")).get("schedules"))
    subjects = current.get("subject_information")

    shs = is_shs_class(current)

    return {
        "subject_id": _first(subjects).get("id"),
        "subject_ids": _ids(subjects),
        "faculty_id": faculty_info.get("id", current.get("faculty_id")),
        "subject_code": class_info.get("subject_code"),
        "course_codes": _ids(course_info.get("course_codes")),
        "academic_year": class_info.get("academic_year"),
        "semester": class_info.get("semester"),
        "school_year": class_info.get("school_year"),
        "section": class_info.get("section"),
        "room_id": _dict(first_schedule.get("room")).get("id"),
        "schedule_id": first_schedule.get("id"),
        "classification": current.get("classification"),
        "maximum_slots": class_info.get("maximum_slots"),
        "grade_level": _blank_to_none(shs_info.get("grade_level")) if shs else None,
        "shs_track_id": _blank_to_none(_dict(shs_info.get("track")).get("id")) if shs else None,
        "shs_strand_id": _blank_to_none(_dict(shs_info.get("strand")).get("id")) if shs else None,
        "settings": merge_settings(current.get("settings"), partial_settings),
    }


class ClassSettingsService:
    """Read-merge-write coordinator for class settings"""

    def __init__(self, upstream: UpstreamClient):
        self.upstream = upstream

    async def update_class_settings(self, class_id: Any, partial_settings: Mapping) -> Dict[str, Any]:
        # NotFoundError / upstream failures here abort before anything is written
        current = await self.upstream.get_class_details(class_id)

        payload = build_class_update_payload(current, partial_settings)
        changed = {group: sorted(leaves) for group, leaves in settings_patch(partial_settings).items() if leaves}
        logger.info(f"[ClassSettings] Updating class {class_id}: {changed}")

        try:
            await self.upstream.update_class(class_id, payload)
        finally:
            # A failed PUT may still have been applied upstream
            self.upstream.invalidate(CacheService.class_key(class_id))

        return {
            "classId": class_id,
            "settings": normalize_class_settings(payload["settings"]),
        }
