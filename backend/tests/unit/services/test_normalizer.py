"""
Unit Tests for the Response Normalizer
"""
import pytest

from portal.services.normalizer import (
    NOT_AVAILABLE,
    checklist_status,
    class_matches_period,
    compute_enrollment_status,
    compute_slot_status,
    format_time,
    group_periods,
    is_shs_class,
    normalize_academic_settings,
    normalize_class_info,
    normalize_class_record,
    normalize_class_settings,
    normalize_enrollment,
    normalize_enrollment_status,
    normalize_roster,
    normalize_schedule,
    normalize_school_year,
    normalize_semester,
    normalize_student_subject,
    summarize_checklist,
    to_boolean,
)

from mocks.upstream_stub import class_record

VALID = ["Verified By Cashier", "Verified By Head Dept"]


class TestClassInfo:

    def test_empty_input_yields_na_everywhere(self):
        info = normalize_class_info({})

        assert info
        assert all(value == NOT_AVAILABLE for value in info.values())

    def test_partial_input(self):
        info = normalize_class_info({"class_information": {"subject_code": "CS101", "section": "  "}})

        assert info["subjectCode"] == "CS101"
        assert info["section"] == NOT_AVAILABLE

    def test_school_year_wins_over_formatted_academic_year(self):
        info = normalize_class_info({"class_information": {
            "school_year": "2025-2026",
            "formatted_academic_year": "AY 2024-2025",
        }})

        assert info["schoolYear"] == "2025-2026"

    def test_accepts_data_envelope(self):
        info = normalize_class_info({"data": {"class_information": {"subject_code": "MATH1"}}})
        assert info["subjectCode"] == "MATH1"

    def test_non_mapping_raises_type_error(self):
        with pytest.raises(TypeError):
            normalize_class_info(None)

    def test_full_record_with_missing_blocks(self):
        record = normalize_class_record({"id": 3})

        assert record["id"] == 3
        assert record["schedules"] == []
        assert record["scheduleSummary"] == "No schedule available"
        assert record["facultyName"] == "Unknown Faculty"
        assert record["settings"]["visual"]["theme"] == "default"


class TestEnrollmentSlots:

    @pytest.mark.parametrize("maximum,enrolled", [(0, 0), (0, 5), (30, 0), (30, 29), (30, 30), (30, 45), (1, 100)])
    def test_available_slots_never_negative(self, maximum, enrolled):
        status = compute_slot_status(maximum, enrolled)
        assert status["availableSlots"] >= 0

    def test_over_enrolled_class_is_full(self):
        assert compute_slot_status(30, 45) == {"isFull": True, "availableSlots": 0}

    def test_upstream_is_full_flag_wins(self):
        assert compute_slot_status(30, 10, is_full=True) == {"isFull": True, "availableSlots": 0}

    def test_counts_enrolled_students_list(self):
        raw = {"class_information": {"maximum_slots": 2}, "enrolled_students": [{}, {}, {}]}

        assert compute_enrollment_status(raw) == {"isFull": True, "availableSlots": 0}

    def test_missing_maximum_uses_default(self):
        status = compute_enrollment_status({"student_count": 10})
        assert status == {"isFull": False, "availableSlots": 20}


class TestClassSettings:

    def test_defaults_when_absent(self):
        settings = normalize_class_settings(None)

        assert settings["visual"] == {
            "theme": "default",
            "accentColor": None,
            "backgroundColor": None,
            "bannerImage": None,
        }
        assert settings["features"]["enableAnnouncements"] is True
        assert settings["features"]["allowLateSubmissions"] is False

    def test_json_string_settings(self):
        settings = normalize_class_settings('{"visual": {"theme": "blue"}, "features": {"enable_announcements": "0"}}')

        assert settings["visual"]["theme"] == "blue"
        assert settings["features"]["enableAnnouncements"] is False

    def test_shs_detection(self):
        assert is_shs_class({"classification": "SHS"}) is True
        assert is_shs_class({"classification": "college"}) is False
        assert is_shs_class({"is_shs": 1, "classification": "college"}) is True


class TestScheduleAndRoster:

    def test_schedule_rows(self):
        schedule = normalize_schedule(class_record())

        assert schedule[0]["dayOfWeek"] == "Monday"
        assert schedule[0]["startTime"] == "08:00"
        assert schedule[0]["endTime"] == "09:30"
        assert schedule[0]["room"]["name"] == "Room 101"

    def test_room_defaults_to_tba(self):
        schedule = normalize_schedule({"schedule_information": {"schedules": [{"day_of_week": "Friday"}]}})
        assert schedule[0]["room"]["name"] == "TBA"
        assert schedule[0]["startTime"] == NOT_AVAILABLE

    def test_roster(self):
        roster = normalize_roster(class_record())

        assert roster[0]["fullName"] == "Grace Hopper"
        assert roster[0]["email"] == NOT_AVAILABLE

    @pytest.mark.parametrize("value,expected", [
        ("1:30 PM", "13:30"),
        ("12:05 am", "00:05"),
        ("2025-06-01T07:15:00", "07:15"),
        ("garbage", NOT_AVAILABLE),
    ])
    def test_format_time(self, value, expected):
        assert format_time(value) == expected


class TestGrades:

    def test_enrollment_record(self):
        record = normalize_enrollment({
            "id": 7,
            "student_id": 2001,
            "prelim_grade": "88.5",
            "midterm_grade": None,
            "is_grades_finalized": 1,
        }, class_id=42)

        assert record["enrollmentId"] == "7"
        assert record["classId"] == 42
        assert record["prelimGrade"] == 88.5
        assert record["midtermGrade"] is None
        assert record["isFinalized"] is True

    def test_recorded_grade_counts_as_submitted(self):
        record = normalize_enrollment({"id": 1, "student_id": 5, "prelim_grade": 88, "midterm_grade": 0})

        assert record["isPrelimSubmitted"] is True
        assert record["isMidtermSubmitted"] is True
        assert record["isFinalsSubmitted"] is False

    def test_submitted_flag_without_grade(self):
        record = normalize_enrollment({"id": 1, "is_finals_submitted": "1"})

        assert record["isFinalsSubmitted"] is True
        assert record["finalsGrade"] is None


class TestEnrollmentStatus:

    def test_no_records_is_not_enrolled(self):
        status = normalize_enrollment_status([], "1", "2025", VALID)

        assert status["isEnrolled"] is False
        assert status["status"] == "not-enrolled"
        assert status["semester"] == 1

    def test_valid_status_counts_as_enrolled(self):
        records = [
            {"status": "Pending", "semester": "1", "school_year": "2025-2026"},
            {"status": "Verified By Cashier", "semester": "1", "school_year": "2025-2026", "course_id": 3},
        ]

        status = normalize_enrollment_status(records, "1", "2025", VALID)

        assert status["isEnrolled"] is True
        assert status["status"] == "Verified By Cashier"
        assert status["courseId"] == 3

    def test_other_period_records_are_ignored(self):
        records = [{"status": "Verified By Cashier", "semester": "2", "school_year": "2025-2026"}]

        status = normalize_enrollment_status(records, "1", "2025-2026", VALID)

        assert status["status"] == "not-enrolled"


class TestAcademicPeriods:

    @pytest.mark.parametrize("value,expected", [
        ("1st", "1"), (2, "2"), ("Second Semester", "2"), ("SUMMER", "summer"), ("4", None), (None, None),
    ])
    def test_semester_aliases(self, value, expected):
        assert normalize_semester(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("2025", "2025"), ("2025-2026", "2025-2026"), ("2025 - 2026", "2025-2026"), ("25-26", None),
    ])
    def test_school_year_forms(self, value, expected):
        assert normalize_school_year(value) == expected

    def test_settings_fall_back_to_school_dates(self):
        settings = normalize_academic_settings({
            "semester": "1st",
            "school_starting_date": "2025-08-01",
            "school_ending_date": "2026-05-31",
        })

        assert settings["semester"] == "1"
        assert settings["schoolYear"] == "2025-2026"
        assert settings["schoolYears"] == ["2025-2026"]
        assert settings["semesters"] == ["1", "2", "summer"]

    def test_group_periods_newest_first(self):
        periods = group_periods([
            ("2024-2025", "2"), ("2025-2026", "summer"), ("2025-2026", "1"), ("2024-2025", "1"), ("bad", "1"),
        ])

        assert periods == [
            {"schoolYear": "2025-2026", "semesters": ["1", "summer"]},
            {"schoolYear": "2024-2025", "semesters": ["1", "2"]},
        ]

    def test_class_matches_period_by_start_year(self):
        summary = {"semester": "1st Semester", "school_year": "2025-2026"}

        assert class_matches_period(summary, "1", "2025") is True
        assert class_matches_period(summary, "2", "2025") is False
        assert class_matches_period({}, "1", "2025") is False

    @pytest.mark.parametrize("value,expected", [
        (True, True), (0, False), ("1", True), ("false", False), (None, False),
    ])
    def test_to_boolean(self, value, expected):
        assert to_boolean(value) is expected


class TestStudentSubjects:

    def test_subject_row_merges_seat_and_class(self):
        details = class_record(9, subject_information=[
            {"id": 501, "title": "Intro to Computing", "description": "Basics", "units": "3", "lecture": 2, "laboratory": "1"},
        ])
        seat = {"id": 70, "class_id": 9, "student_id": 2001, "prelim_grade": "90", "created_at": "2025-08-01"}

        row = normalize_student_subject(seat, details)

        assert row["enrollmentId"] == "70"
        assert row["classId"] == 9
        assert row["subjectCode"] == "CS101"
        assert row["subjectName"] == "Intro to Computing"
        assert row["subjectDescription"] == "Basics"
        assert (row["units"], row["lecture"], row["laboratory"]) == (3.0, 2.0, 1.0)
        assert row["prelimGrade"] == 90.0
        assert row["isPrelimSubmitted"] is True
        assert row["isMidtermSubmitted"] is False
        assert row["facultyName"] == "Ada Lovelace"
        assert row["schedules"][0]["dayOfWeek"] == "Monday"
        assert row["enrolledAt"] == "2025-08-01"

    def test_subject_without_faculty_or_units(self):
        details = class_record(9, subject_information=[], faculty_information=None)

        row = normalize_student_subject({"id": 1, "class_id": 9}, details)

        assert row["units"] is None
        assert row["subjectDescription"] is None
        assert row["facultyName"] == "Unknown Faculty"


class TestChecklist:

    @pytest.mark.parametrize("grade,enrolled,expected", [
        (None, False, "not-started"),
        (1.25, False, "not-started"),
        (None, True, "ongoing"),
        (0, True, "ongoing"),
        ("1.75", True, "finished"),
    ])
    def test_status(self, grade, enrolled, expected):
        assert checklist_status(grade, enrolled) == expected

    def test_summary(self):
        items = [
            {"status": "finished", "grade": 1.5, "units": 3},
            {"status": "finished", "grade": 2.0, "units": 2},
            {"status": "ongoing", "grade": None, "units": 3},
            {"status": "not-started", "grade": None, "units": None},
        ]

        summary = summarize_checklist(items)

        assert summary["totalSubjects"] == 4
        assert summary["finishedSubjects"] == 2
        assert summary["ongoingSubjects"] == 1
        assert summary["notStartedSubjects"] == 1
        assert summary["gwa"] == 1.75
        assert summary["earnedUnits"] == 5
        assert summary["totalUnits"] == 8
        assert summary["completionPercentage"] == 50

    def test_empty_summary(self):
        summary = summarize_checklist([])

        assert summary["gwa"] is None
        assert summary["completionPercentage"] == 0
