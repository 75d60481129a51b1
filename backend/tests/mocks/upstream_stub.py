"""
Stub academic-records backend for tests
Serves canned JSON through httpx.MockTransport and records every request
"""
import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx

Handler = Callable[[httpx.Request], httpx.Response]
Route = Union[Handler, Tuple[int, Any]]


class UpstreamStub:
    """Routes (METHOD, path) to canned responses"""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, body: Any = None) -> None:
        self.routes[(method.upper(), path)] = (status, body)

    def add_handler(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method.upper(), path)] = handler

    def fail_network(self, method: str, path: str) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)
        self.add_handler(method, path, handler)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": f"No route for {request.url.path}"})
        if callable(route):
            return route(request)
        status, body = route
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def last_json(self, method: str, path: str) -> Optional[Dict[str, Any]]:
        matches = self.calls(method, path)
        return json.loads(matches[-1].content) if matches else None


class InMemoryProfileStore:
    """ProfileStore kept in a dict"""

    def __init__(self, profiles: Optional[Dict[str, Dict[str, Any]]] = None, fail_reads: bool = False):
        self.profiles = profiles or {}
        self.fail_reads = fail_reads
        self.writes: List[Tuple[str, Dict[str, Any]]] = []

    async def read(self, user_id: str) -> Dict[str, Any]:
        if self.fail_reads:
            raise RuntimeError("profile store offline")
        return dict(self.profiles.get(user_id, {}))

    async def write(self, user_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        self.writes.append((user_id, dict(patch)))
        profile = self.profiles.setdefault(user_id, {})
        for key, value in patch.items():
            if key == "metadata" and isinstance(value, dict):
                profile.setdefault("metadata", {}).update(value)
            else:
                profile[key] = value
        return dict(profile)


# ========== Canned upstream records ==========

def class_record(class_id: int = 9, **overrides) -> Dict[str, Any]:
    """A college class with non-default values in every field"""
    record = {
        "id": class_id,
        "classification": "college",
        "faculty_id": "fac-1",
        "class_information": {
            "subject_code": "CS101",
            "subject_title": "Intro to Computing",
            "section": "A",
            "semester": "1",
            "school_year": "2025-2026",
            "academic_year": 1,
            "maximum_slots": 40,
            "formatted_semester": "1st Semester",
        },
        "subject_information": [{"id": 501, "title": "Intro to Computing"}, {"id": 502}],
        "course_information": {
            "course_codes": [{"id": 11}, {"id": 12}],
            "formatted_course_codes": "BSCS, BSIT",
        },
        "faculty_information": {"id": "fac-1", "full_name": "Ada Lovelace"},
        "schedule_information": {
            "schedules": [
                {
                    "id": 77,
                    "day_of_week": "Monday",
                    "start_time": "08:00:00",
                    "end_time": "09:30:00",
                    "room": {"id": 5, "name": "Room 101", "building": "Main"},
                },
            ],
            "formatted_weekly_schedule": "Mon 8:00-9:30",
        },
        "shs_information": {"grade_level": "", "track": {}, "strand": {}},
        "enrolled_students": [
            {"id": 1, "student_id": 2001, "student": {"id": 2001, "first_name": "Grace", "last_name": "Hopper"}},
        ],
        "settings": {
            "visual": {
                "theme": "dark",
                "accent_color": "#ff0000",
                "background_color": "#000000",
                "banner_image": "banner.png",
            },
            "features": {
                "enable_announcements": True,
                "enable_grade_visibility": False,
                "enable_attendance_tracking": False,
                "allow_late_submissions": True,
                "enable_discussion_board": True,
            },
        },
    }
    record.update(overrides)
    return record


def general_settings(semester: str = "1", school_year: str = "2025-2026") -> Dict[str, Any]:
    return {
        "data": {
            "current_semester": semester,
            "current_school_year": school_year,
            "available_semesters": ["1", "2", "summer"],
            "available_school_years": ["2025-2026", "2024-2025"],
        }
    }
