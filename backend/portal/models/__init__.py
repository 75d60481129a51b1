# Re-export all models for convenient imports
from portal.models.academic import (
    Student,
    Faculty,
    Room,
    AcademicClass,
    ClassSchedule,
    StudentEnrollment,
    Subject,
    SubjectEnrollment,
    UserProfile,
)

__all__ = [
    "Student",
    "Faculty",
    "Room",
    "AcademicClass",
    "ClassSchedule",
    "StudentEnrollment",
    "Subject",
    "SubjectEnrollment",
    "UserProfile",
]
