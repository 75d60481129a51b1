"""
Response Normalizer - maps upstream JSON to the gateway's flat shapes.

Every function here is pure and total over dict input: missing or oddly
typed fields fall back to defaults ("N/A" for display strings, [] for lists,
None for numbers). Only a non-mapping top-level argument raises TypeError.
"""

import json
import re
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

NOT_AVAILABLE = "N/A"
DEFAULT_MAXIMUM_SLOTS = 30
DEFAULT_SEMESTERS = ["1", "2", "summer"]

_SEMESTER_ALIASES = {
    "1": "1", "1st": "1", "first": "1", "1st semester": "1", "first semester": "1",
    "2": "2", "2nd": "2", "second": "2", "2nd semester": "2", "second semester": "2",
    "summer": "summer", "3": "summer", "midyear": "summer",
}
_SEMESTER_ORDER = {"1": 0, "2": 1, "summer": 2}
_SCHOOL_YEAR_RE = re.compile(r"^\d{4}(-\d{4})?$")
_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})(?::\d{2})?\s*([AaPp][Mm])?")
_TRUE_STRINGS = {"1", "true", "yes", "on"}

# Class settings leaves: camelCase (gateway) -> snake_case (upstream)
VISUAL_FIELDS = {
    "theme": "theme",
    "accentColor": "accent_color",
    "backgroundColor": "background_color",
    "bannerImage": "banner_image",
}
FEATURE_FIELDS = {
    "enableAnnouncements": "enable_announcements",
    "enableGradeVisibility": "enable_grade_visibility",
    "enableAttendanceTracking": "enable_attendance_tracking",
    "allowLateSubmissions": "allow_late_submissions",
    "enableDiscussionBoard": "enable_discussion_board",
}
DEFAULT_CLASS_SETTINGS: Dict[str, Dict[str, Any]] = {
    "visual": {
        "theme": "default",
        "accent_color": None,
        "background_color": None,
        "banner_image": None,
    },
    "features": {
        "enable_announcements": True,
        "enable_grade_visibility": True,
        "enable_attendance_tracking": True,
        "allow_late_submissions": False,
        "enable_discussion_board": False,
    },
}


# ========== Primitive helpers ==========

def _require_mapping(raw: Any, name: str) -> Mapping:
    if not isinstance(raw, Mapping):
        raise TypeError(f"{name} expects a mapping, got {type(raw).__name__}")
    # Accept both the unwrapped resource and the {"data": {...}} envelope
    if "data" in raw and isinstance(raw.get("data"), Mapping):
        return raw["data"]
    return raw


def _dict(value: Any) -> Mapping:
    return value if isinstance(value, Mapping) else {}


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _text(value: Any, default: str = NOT_AVAILABLE) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text if text else default


def _int(value: Any, default: Optional[int] = None) -> Optional[int]:
    if isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_boolean(value: Any) -> bool:
    """Upstream flags arrive as bools, 0/1 or strings"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def normalize_semester(value: Any) -> Optional[str]:
    """Map "1st", "first", 1, "Summer" ... to "1" / "2" / "summer"."""
    if value is None or isinstance(value, bool):
        return None
    return _SEMESTER_ALIASES.get(str(value).strip().lower())


def normalize_school_year(value: Any) -> Optional[str]:
    """Accept "2024", "2024-2025" and "2024 - 2025"; anything else is None."""
    if value is None:
        return None
    compact = re.sub(r"\s+", "", str(value))
    return compact if _SCHOOL_YEAR_RE.match(compact) else None


def semester_for_display(semester: Optional[str]) -> Any:
    """Numeric semesters are reported as ints, "summer" as a string"""
    if semester and semester.isdigit():
        return int(semester)
    return semester


def _year_of(value: Any) -> Optional[str]:
    if isinstance(value, (date, datetime)):
        return str(value.year)
    match = re.match(r"\s*(\d{4})", str(value or ""))
    return match.group(1) if match else None


def format_school_year(start: Any, end: Any) -> Optional[str]:
    """School year from start/end dates, e.g. "2024-2025"."""
    start_year, end_year = _year_of(start), _year_of(end)
    if start_year and end_year:
        return f"{start_year}-{end_year}"
    return start_year or end_year


def format_time(value: Any) -> str:
    """HH:MM for times given as time objects, "08:00:00", ISO datetimes or "1:30 PM"."""
    if isinstance(value, (datetime, time)):
        return value.strftime("%H:%M")
    if not value:
        return NOT_AVAILABLE

    text = str(value)
    if "T" in text:
        text = text.split("T", 1)[1]
    match = _TIME_RE.search(text)
    if not match:
        return NOT_AVAILABLE

    hours, minutes, meridiem = int(match.group(1)), match.group(2), match.group(3)
    if meridiem:
        meridiem = meridiem.lower()
        if meridiem == "pm" and hours < 12:
            hours += 12
        elif meridiem == "am" and hours == 12:
            hours = 0
    return f"{hours:02d}:{minutes}"


# ========== Class details ==========

def _first_subject(data: Mapping) -> Mapping:
    subjects = data.get("subject_information")
    if isinstance(subjects, list):
        return _dict(subjects[0]) if subjects else {}
    return _dict(subjects)


def _subject_title(data: Mapping) -> str:
    class_info = _dict(data.get("class_information"))
    if class_info.get("subject_title"):
        return _text(class_info.get("subject_title"))
    first = _first_subject(data)
    return _text(first.get("title") or first.get("subject_title") or first.get("name"))


def normalize_class_info(raw: Mapping) -> Dict[str, str]:
    """
    Flat display fields of a class.

    ``school_year`` wins over ``formatted_academic_year`` when both exist.
    """
    data = _require_mapping(raw, "normalize_class_info")
    class_info = _dict(data.get("class_information"))
    shs_info = _dict(data.get("shs_information"))

    return {
        "subjectCode": _text(class_info.get("subject_code")),
        "subjectName": _subject_title(data),
        "section": _text(class_info.get("section")),
        "semester": _text(normalize_semester(class_info.get("semester")) or class_info.get("semester")),
        "semesterFormatted": _text(class_info.get("formatted_semester")),
        "schoolYear": _text(class_info.get("school_year") or class_info.get("formatted_academic_year")),
        "gradeLevel": _text(shs_info.get("grade_level")),
        "track": _text(_dict(shs_info.get("track")).get("track_name")),
        "strand": _text(_dict(shs_info.get("strand")).get("strand_name")),
    }


def normalize_room(raw: Any) -> Dict[str, Any]:
    room = _dict(raw)
    return {
        "id": room.get("id"),
        "name": _text(room.get("name"), "TBA"),
        "building": _text(room.get("building")),
    }


def normalize_schedule(raw: Mapping) -> List[Dict[str, Any]]:
    """Schedule rows of a class; [] when upstream sends no schedule block."""
    data = _require_mapping(raw, "normalize_schedule")
    schedules = _list(_dict(data.get("schedule_information")).get("schedules"))

    entries = []
    for item in schedules:
        row = _dict(item)
        entries.append({
            "id": row.get("id"),
            "dayOfWeek": _text(row.get("day_of_week")),
            "startTime": format_time(row.get("start_time") or row.get("formatted_start_time")),
            "endTime": format_time(row.get("end_time") or row.get("formatted_end_time")),
            "timeRange": _text(row.get("time_range")),
            "room": normalize_room(row.get("room")),
        })
    return entries


def get_enrollment_count(raw: Mapping) -> int:
    data = _require_mapping(raw, "get_enrollment_count")
    enrolled = data.get("enrolled_students")
    if isinstance(enrolled, list):
        return len(enrolled)

    class_info = _dict(data.get("class_information"))
    for candidate in (class_info.get("enrolled_students"), data.get("student_count")):
        count = _int(candidate)
        if count is not None:
            return max(0, count)
    return 0


def compute_slot_status(maximum_slots: int, enrolled_count: int, is_full: Optional[bool] = None) -> Dict[str, Any]:
    """availableSlots = 0 when full, otherwise max(0, maximum - enrolled)."""
    if is_full is None:
        is_full = maximum_slots > 0 and enrolled_count >= maximum_slots
    available = 0 if is_full else max(0, maximum_slots - enrolled_count)
    return {"isFull": bool(is_full), "availableSlots": available}


def _maximum_slots(data: Mapping) -> int:
    class_info = _dict(data.get("class_information"))
    value = class_info.get("maximum_slots", data.get("maximum_slots"))
    slots = _int(value)
    return DEFAULT_MAXIMUM_SLOTS if slots is None or slots < 0 else slots


def compute_enrollment_status(raw: Mapping) -> Dict[str, Any]:
    data = _require_mapping(raw, "compute_enrollment_status")
    class_info = _dict(data.get("class_information"))
    is_full = class_info.get("is_full")
    return compute_slot_status(
        _maximum_slots(data),
        get_enrollment_count(data),
        to_boolean(is_full) if is_full is not None else None,
    )


def _parse_settings(raw: Any) -> Mapping:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return {}
    return _dict(raw)


def _settings_leaf(group: Mapping, camel: str, snake: str) -> Tuple[bool, Any]:
    for key in (snake, camel):
        if key in group:
            return True, group[key]
    return False, None


def upstream_class_settings(raw: Any) -> Dict[str, Dict[str, Any]]:
    """
    Complete snake_case settings tree as upstream stores it.

    Leaves missing upstream take DEFAULT_CLASS_SETTINGS values; feature
    flags are coerced to bool.
    """
    settings = _parse_settings(raw)
    tree: Dict[str, Dict[str, Any]] = {}
    for group_name, fields in (("visual", VISUAL_FIELDS), ("features", FEATURE_FIELDS)):
        group = _dict(settings.get(group_name))
        values = {}
        for camel, snake in fields.items():
            present, value = _settings_leaf(group, camel, snake)
            if not present:
                value = DEFAULT_CLASS_SETTINGS[group_name][snake]
            elif group_name == "features":
                value = to_boolean(value)
            values[snake] = value
        tree[group_name] = values
    return tree


def normalize_class_settings(raw: Any) -> Dict[str, Dict[str, Any]]:
    """camelCase ClassSettings for the UI"""
    tree = upstream_class_settings(raw)
    return {
        "visual": {camel: tree["visual"][snake] for camel, snake in VISUAL_FIELDS.items()},
        "features": {camel: tree["features"][snake] for camel, snake in FEATURE_FIELDS.items()},
    }


def is_shs_class(raw: Mapping) -> bool:
    data = _require_mapping(raw, "is_shs_class")
    if "is_shs" in data and data.get("is_shs") is not None:
        return to_boolean(data.get("is_shs"))
    return _text(data.get("classification"), "").lower() == "shs"


def normalize_class_record(raw: Mapping) -> Dict[str, Any]:
    """ClassRecord for dashboards and class pages"""
    data = _require_mapping(raw, "normalize_class_record")
    info = normalize_class_info(data)
    status = compute_enrollment_status(data)
    faculty = _dict(data.get("faculty_information"))
    schedule_info = _dict(data.get("schedule_information"))

    return {
        "id": data.get("id"),
        "subjectCode": info["subjectCode"],
        "subjectName": info["subjectName"],
        "section": info["section"],
        "semester": info["semester"],
        "semesterFormatted": info["semesterFormatted"],
        "schoolYear": info["schoolYear"],
        "classification": _text(data.get("classification")),
        "gradeLevel": info["gradeLevel"],
        "track": info["track"],
        "strand": info["strand"],
        "courseCodes": _text(_dict(data.get("course_information")).get("formatted_course_codes")),
        "maximumSlots": _maximum_slots(data),
        "enrolledCount": get_enrollment_count(data),
        "isFull": status["isFull"],
        "availableSlots": status["availableSlots"],
        "schedules": normalize_schedule(data),
        "scheduleSummary": _text(schedule_info.get("formatted_weekly_schedule"), "No schedule available"),
        "settings": normalize_class_settings(data.get("settings")),
        "facultyId": faculty.get("id"),
        "facultyName": _text(faculty.get("full_name"), "Unknown Faculty"),
    }


def class_matches_period(raw: Mapping, semester: str, school_year: str) -> bool:
    """Whether a faculty class summary belongs to the given period"""
    data = _require_mapping(raw, "class_matches_period")
    class_info = _dict(data.get("class_information"))
    class_semester = normalize_semester(data.get("semester", class_info.get("semester")))
    class_year = normalize_school_year(data.get("school_year", class_info.get("school_year")))
    if class_semester is None or class_year is None:
        return False
    return class_semester == semester and same_school_year(class_year, school_year)


def same_school_year(left: str, right: str) -> bool:
    # "2024" matches "2024-2025" by start year
    if "-" in left and "-" in right:
        return left == right
    return left.split("-")[0] == right.split("-")[0]


# ========== Roster, enrollments and grades ==========

def _person_name(person: Mapping) -> str:
    if person.get("full_name"):
        return _text(person.get("full_name"))
    parts = [person.get("first_name"), person.get("middle_name"), person.get("last_name")]
    name = " ".join(str(p).strip() for p in parts if p)
    return name or NOT_AVAILABLE


def normalize_roster(raw: Mapping) -> List[Dict[str, Any]]:
    data = _require_mapping(raw, "normalize_roster")
    roster = []
    for item in _list(data.get("enrolled_students")):
        row = _dict(item)
        student = _dict(row.get("student"))
        roster.append({
            "enrollmentId": row.get("id"),
            "studentId": row.get("student_id", student.get("id")),
            "studentNumber": _text(student.get("student_id") or row.get("student_id")),
            "fullName": _person_name(student),
            "firstName": _text(student.get("first_name")),
            "middleName": _text(student.get("middle_name"), ""),
            "lastName": _text(student.get("last_name")),
            "email": _text(student.get("email")),
            "enrolledAt": row.get("created_at"),
        })
    return roster


def normalize_enrollment(raw: Mapping, class_id: Any = None) -> Dict[str, Any]:
    """EnrollmentRecord with grade columns; absent grades are None"""
    data = _require_mapping(raw, "normalize_enrollment")
    student = _dict(data.get("student"))
    name = _person_name(student) if student else _text(data.get("student_name"))
    prelim = _number(data.get("prelim_grade"))
    midterm = _number(data.get("midterm_grade"))
    finals = _number(data.get("finals_grade"))

    # A recorded grade counts as submitted even when upstream omits the flag
    return {
        "enrollmentId": str(data["id"]) if data.get("id") is not None else None,
        "studentId": str(data.get("student_id") or student.get("id") or "") or None,
        "classId": data.get("class_id", class_id),
        "studentName": name,
        "prelimGrade": prelim,
        "midtermGrade": midterm,
        "finalsGrade": finals,
        "totalAverage": _number(data.get("total_average")),
        "isPrelimSubmitted": to_boolean(data.get("is_prelim_submitted")) or prelim is not None,
        "isMidtermSubmitted": to_boolean(data.get("is_midterm_submitted")) or midterm is not None,
        "isFinalsSubmitted": to_boolean(data.get("is_finals_submitted")) or finals is not None,
        "isFinalized": to_boolean(data.get("is_grades_finalized")),
        "remarks": data.get("remarks") or None,
    }


def _in_period(row: Mapping, semester: str, school_year: str) -> bool:
    # Rows without period fields are trusted to match the query they came from
    row_semester = normalize_semester(row.get("semester"))
    row_year = normalize_school_year(row.get("school_year"))
    if row_semester is not None and row_semester != semester:
        return False
    if row_year is not None and not same_school_year(row_year, school_year):
        return False
    return True


def normalize_enrollment_status(
    records: Iterable[Mapping],
    semester: str,
    school_year: str,
    valid_statuses: Iterable[str],
) -> Dict[str, Any]:
    """
    Summarize a student's enrollment for one period.

    The first record whose status is in ``valid_statuses`` counts as enrolled.
    Without any record the status is "not-enrolled".
    """
    valid = {status.strip().lower() for status in valid_statuses}
    rows = [row for row in (_dict(record) for record in records) if _in_period(row, semester, school_year)]
    match = next((row for row in rows if _text(row.get("status"), "").lower() in valid), None)
    chosen = match or (rows[0] if rows else None)

    if chosen is None:
        return {
            "isEnrolled": False,
            "status": "not-enrolled",
            "semester": semester_for_display(semester),
            "academicYear": None,
            "schoolYear": school_year,
            "courseId": None,
        }

    return {
        "isEnrolled": match is not None,
        "status": _text(chosen.get("status"), "unknown"),
        "semester": semester_for_display(normalize_semester(chosen.get("semester")) or semester),
        "academicYear": chosen.get("academic_year"),
        "schoolYear": normalize_school_year(chosen.get("school_year")) or school_year,
        "courseId": chosen.get("course_id"),
    }


# ========== Student subjects & curriculum ==========

def normalize_student_subject(enrollment: Mapping, class_details: Mapping) -> Dict[str, Any]:
    """One enrolled subject of a student: class display fields, units and grades"""
    seat = _require_mapping(enrollment, "normalize_student_subject")
    details = _require_mapping(class_details, "normalize_student_subject")
    record = normalize_enrollment(seat, details.get("id"))
    info = normalize_class_info(details)
    subject = _first_subject(details)
    faculty = _dict(details.get("faculty_information"))

    return {
        "enrollmentId": record["enrollmentId"],
        "classId": record["classId"],
        "subjectCode": info["subjectCode"],
        "subjectName": info["subjectName"],
        "subjectDescription": subject.get("description") or None,
        "section": info["section"],
        "semester": info["semester"],
        "schoolYear": info["schoolYear"],
        "classification": _text(details.get("classification")),
        "units": _number(subject.get("units")),
        "lecture": _number(subject.get("lecture")),
        "laboratory": _number(subject.get("laboratory")),
        "prelimGrade": record["prelimGrade"],
        "midtermGrade": record["midtermGrade"],
        "finalsGrade": record["finalsGrade"],
        "totalAverage": record["totalAverage"],
        "isPrelimSubmitted": record["isPrelimSubmitted"],
        "isMidtermSubmitted": record["isMidtermSubmitted"],
        "isFinalsSubmitted": record["isFinalsSubmitted"],
        "isFinalized": record["isFinalized"],
        "facultyName": _text(faculty.get("full_name"), "Unknown Faculty"),
        "schedules": normalize_schedule(details),
        "enrolledAt": seat.get("created_at"),
    }


def checklist_status(grade: Any, enrolled: bool) -> str:
    """not-started without a seat, finished once a positive grade is on record"""
    if not enrolled:
        return "not-started"
    value = _number(grade)
    if value is not None and value > 0:
        return "finished"
    return "ongoing"


def summarize_checklist(items: Iterable[Mapping]) -> Dict[str, Any]:
    """Progress counts, earned units and general weighted average of a checklist"""
    items = [_dict(item) for item in items]
    finished = [item for item in items if item.get("status") == "finished"]
    graded = [_number(item.get("grade")) for item in finished]
    graded = [grade for grade in graded if grade is not None]
    total = len(items)

    return {
        "totalSubjects": total,
        "finishedSubjects": len(finished),
        "ongoingSubjects": sum(1 for item in items if item.get("status") == "ongoing"),
        "notStartedSubjects": sum(1 for item in items if item.get("status") == "not-started"),
        "gwa": round(sum(graded) / len(graded), 2) if graded else None,
        "earnedUnits": sum(_number(item.get("units")) or 0 for item in finished),
        "totalUnits": sum(_number(item.get("units")) or 0 for item in items),
        "completionPercentage": round(len(finished) * 100 / total) if total else 0,
    }


# ========== Faculty ==========

def normalize_faculty_summary(raw: Mapping) -> Dict[str, Any]:
    data = _require_mapping(raw, "normalize_faculty_summary")
    name = _person_name(data)
    return {
        "id": data.get("id"),
        "name": "Unknown Faculty" if name == NOT_AVAILABLE else name,
        "department": _text(data.get("department")),
        "email": _text(data.get("email")),
    }


# ========== Academic settings ==========

def normalize_academic_settings(raw: Mapping) -> Dict[str, Any]:
    """
    Current period plus the enumerated valid semesters and school years.

    The school year falls back to the school start/end dates when upstream
    does not send it directly.
    """
    data = _require_mapping(raw, "normalize_academic_settings")

    semester = normalize_semester(data.get("current_semester", data.get("semester")))
    school_year = normalize_school_year(data.get("current_school_year", data.get("school_year")))
    if school_year is None:
        school_year = normalize_school_year(
            format_school_year(data.get("school_starting_date"), data.get("school_ending_date"))
        )

    semesters = [
        s for s in (normalize_semester(v) for v in _list(data.get("available_semesters", data.get("semesters"))))
        if s
    ] or list(DEFAULT_SEMESTERS)
    school_years = [
        y for y in (normalize_school_year(v) for v in _list(data.get("available_school_years", data.get("school_years"))))
        if y
    ]
    if school_year and school_year not in school_years:
        school_years.insert(0, school_year)

    return {
        "semester": semester,
        "schoolYear": school_year,
        "semesters": _dedupe(semesters),
        "schoolYears": _dedupe(school_years),
    }


def _dedupe(values: Iterable[str]) -> List[str]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def group_periods(pairs: Iterable[Tuple[Any, Any]]) -> List[Dict[str, Any]]:
    """[(school_year, semester), ...] -> [{schoolYear, semesters}] newest year first"""
    grouped: Dict[str, List[str]] = {}
    for school_year, semester in pairs:
        year, sem = normalize_school_year(school_year), normalize_semester(semester)
        if not year or not sem:
            continue
        semesters = grouped.setdefault(year, [])
        if sem not in semesters:
            semesters.append(sem)

    return [
        {"schoolYear": year, "semesters": sorted(grouped[year], key=lambda s: _SEMESTER_ORDER.get(s, 99))}
        for year in sorted(grouped, reverse=True)
    ]


# ========== Attendance & posts ==========

def normalize_attendance(raw: Mapping) -> Dict[str, Any]:
    data = _require_mapping(raw, "normalize_attendance")
    return {
        "id": data.get("id"),
        "studentId": data.get("student_id"),
        "classId": data.get("class_id"),
        "date": _text(data.get("date")),
        "status": _text(data.get("status"), "absent").lower(),
        "remarks": data.get("remarks") or None,
    }


def normalize_class_post(raw: Mapping) -> Dict[str, Any]:
    data = _require_mapping(raw, "normalize_class_post")
    attachments = []
    for item in _list(data.get("attachments")):
        attachment = _dict(item)
        attachments.append({
            "name": _text(attachment.get("name") or attachment.get("file_name"), "attachment"),
            "url": attachment.get("url") or attachment.get("file_url"),
            "mimeType": attachment.get("mime_type") or attachment.get("type"),
        })
    return {
        "id": data.get("id"),
        "classId": data.get("class_id"),
        "title": _text(data.get("title"), "Announcement"),
        "content": data.get("content") or "",
        "type": _text(data.get("type"), "announcement"),
        "attachments": attachments,
        "createdAt": data.get("created_at"),
    }
