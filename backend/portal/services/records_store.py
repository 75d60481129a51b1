"""
Records Store - queries against the local read-model tables
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.academic import (
    AcademicClass,
    ClassSchedule,
    Faculty,
    Room,
    Student,
    StudentEnrollment,
    Subject,
    SubjectEnrollment,
)
from portal.services.normalizer import (
    checklist_status,
    format_time,
    normalize_school_year,
    normalize_semester,
    same_school_year,
)

DAY_ORDER = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
}


def _schedule_sort_key(entry: Dict[str, Any]) -> Tuple[int, str]:
    return DAY_ORDER.get(str(entry["dayOfWeek"]).lower(), 99), entry["startTime"]


def _schedule_entry(schedule: ClassSchedule, room: Optional[Room]) -> Dict[str, Any]:
    return {
        "id": schedule.id,
        "classId": schedule.class_id,
        "dayOfWeek": schedule.day_of_week,
        "startTime": format_time(schedule.start_time),
        "endTime": format_time(schedule.end_time),
        "room": {
            "id": room.id if room else None,
            "name": room.name if room else "TBA",
            "building": (room.building or "N/A") if room else "N/A",
        },
    }


def _student_dict(student: Student) -> Dict[str, Any]:
    return {
        "id": student.id,
        "studentId": student.student_id,
        "firstName": student.first_name,
        "middleName": student.middle_name,
        "lastName": student.last_name,
        "email": student.email,
        "courseId": student.course_id,
        "academicYear": student.academic_year,
        "status": student.status,
    }


class RecordsStore:
    """Read access to legacy local records"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =====================================================
    # STUDENTS
    # =====================================================

    async def find_student(self, student_number: int) -> Optional[Student]:
        result = await self.db.execute(select(Student).where(Student.student_id == student_number))
        return result.scalar_one_or_none()

    async def validate_student(self, email: str, student_id: str) -> Dict[str, Any]:
        """
        Check that a student number exists and belongs to ``email``.

        Returns {"valid": bool, "message"?: str, "student"?: {...}}.
        """
        student_id = (student_id or "").strip()
        if not student_id.isdigit():
            return {"valid": False, "message": "Invalid Student ID format. Please enter numbers only."}

        student = await self.find_student(int(student_id))
        if student is None:
            return {
                "valid": False,
                "message": "Student ID not found. Please check your Student ID and try again.",
            }

        if (student.email or "").strip().lower() != (email or "").strip().lower():
            return {
                "valid": False,
                "message": "Email does not match the email associated with this Student ID.",
            }

        return {"valid": True, "student": _student_dict(student)}

    # =====================================================
    # SCHEDULES
    # =====================================================

    async def get_class_schedule(self, class_id: int) -> List[Dict[str, Any]]:
        """Weekly meetings of one class ordered by day then start time"""
        result = await self.db.execute(
            select(ClassSchedule, Room)
            .outerjoin(Room, Room.id == ClassSchedule.room_id)
            .where(ClassSchedule.class_id == class_id, ClassSchedule.deleted_at.is_(None))
        )
        entries = [_schedule_entry(schedule, room) for schedule, room in result.all()]
        return sorted(entries, key=_schedule_sort_key)

    async def get_student_schedule(self, student_number: int, semester: str, school_year: str) -> List[Dict[str, Any]]:
        """Weekly meetings of every class the student sits in for the period"""
        result = await self.db.execute(
            select(ClassSchedule, Room, AcademicClass)
            .join(AcademicClass, AcademicClass.id == ClassSchedule.class_id)
            .join(SubjectEnrollment, SubjectEnrollment.class_id == AcademicClass.id)
            .outerjoin(Room, Room.id == ClassSchedule.room_id)
            .where(
                SubjectEnrollment.student_id == student_number,
                ClassSchedule.deleted_at.is_(None),
            )
        )

        entries = []
        for schedule, room, academic_class in result.all():
            if normalize_semester(academic_class.semester) != semester:
                continue
            class_year = normalize_school_year(academic_class.school_year)
            if class_year is None or not same_school_year(class_year, school_year):
                continue
            entry = _schedule_entry(schedule, room)
            entry["subjectCode"] = academic_class.subject_code
            entry["subjectName"] = academic_class.subject_title or "N/A"
            entry["section"] = academic_class.section or "N/A"
            entries.append(entry)
        return sorted(entries, key=_schedule_sort_key)

    # =====================================================
    # ENROLLMENT HISTORY
    # =====================================================

    async def list_enrollment_periods(self) -> List[Tuple[str, str]]:
        """Distinct (school_year, semester) pairs present in enrollment history"""
        result = await self.db.execute(
            select(StudentEnrollment.school_year, StudentEnrollment.semester)
            .where(StudentEnrollment.deleted_at.is_(None))
            .distinct()
        )
        return [(school_year, semester) for school_year, semester in result.all()]

    async def list_student_enrollments(self, student_number: int) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(StudentEnrollment)
            .where(StudentEnrollment.student_id == student_number, StudentEnrollment.deleted_at.is_(None))
            .order_by(StudentEnrollment.school_year.desc(), StudentEnrollment.semester)
        )
        return [
            {
                "id": row.id,
                "status": row.status,
                "semester": row.semester,
                "schoolYear": row.school_year,
                "academicYear": row.academic_year,
                "courseId": row.course_id,
            }
            for row in result.scalars().all()
        ]

    # =====================================================
    # CURRICULUM
    # =====================================================

    async def get_curriculum_checklist(self, student_number: int) -> Optional[List[Dict[str, Any]]]:
        """
        Every subject of the student's course with its completion status.

        Returns None when the student or the student's course is unknown.
        A subject is "not-started" without an enrollment, "finished" once a
        positive grade is recorded and "ongoing" otherwise.
        """
        student = await self.find_student(student_number)
        if student is None or not student.course_id:
            return None

        subjects = await self.db.execute(
            select(Subject)
            .where(Subject.course_id == student.course_id)
            .order_by(Subject.academic_year, Subject.semester, Subject.id)
        )
        enrollments = await self.db.execute(
            select(SubjectEnrollment).where(
                SubjectEnrollment.student_id == student_number,
                SubjectEnrollment.subject_id.is_not(None),
            )
        )
        by_subject = {row.subject_id: row for row in enrollments.scalars().all()}

        checklist = []
        for subject in subjects.scalars().all():
            enrollment = by_subject.get(subject.id)
            status = checklist_status(enrollment.grade if enrollment else None, enrollment is not None)
            checklist.append({
                "subjectId": str(subject.id),
                "code": subject.code,
                "title": subject.title or "Untitled Subject",
                "description": subject.description,
                "units": float(subject.units) if subject.units is not None else None,
                "lecture": float(subject.lecture) if subject.lecture is not None else None,
                "laboratory": float(subject.laboratory) if subject.laboratory is not None else None,
                "prerequisite": subject.prerequisite,
                "academicYear": subject.academic_year,
                "semester": subject.semester,
                "group": subject.group,
                "classification": subject.classification,
                "status": status,
                "grade": float(enrollment.grade) if status == "finished" else None,
                "enrollmentId": str(enrollment.id) if enrollment else None,
                "instructor": enrollment.instructor if enrollment else None,
                "section": enrollment.section if enrollment else None,
                "remarks": enrollment.remarks if enrollment else None,
                "schoolYear": enrollment.school_year if enrollment else None,
                "enrolledSemester": enrollment.semester if enrollment else None,
                "isCredited": bool(enrollment.is_credited) if enrollment else False,
            })
        return checklist

    # =====================================================
    # FACULTY
    # =====================================================

    async def find_faculty_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        result = await self.db.execute(
            select(Faculty).where(func.lower(Faculty.email) == (email or "").strip().lower())
        )
        faculty = result.scalar_one_or_none()
        if faculty is None:
            return None
        return {
            "id": faculty.id,
            "name": faculty.full_name,
            "email": faculty.email,
            "department": faculty.department or "N/A",
        }
