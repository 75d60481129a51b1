"""
Local read-model tables.

Legacy copies of records the upstream backend has not taken over yet
(schedules, rooms, faculty listings, curricula, enrollment history) plus the
per-user profile used to remember the selected academic period.
"""

from sqlalchemy import Column, String, Integer, BigInteger, Boolean, DateTime, Numeric, Text, Time, ForeignKey, JSON
from datetime import datetime

from portal.core.database import Base


class Student(Base):
    """Student master record"""
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(BigInteger, unique=True, index=True, nullable=False)  # school-issued number
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), index=True, nullable=True)
    course_id = Column(Integer, nullable=True)
    academic_year = Column(Integer, nullable=True)  # year level
    status = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Student {self.student_id}>"


class Faculty(Base):
    """Faculty listing"""
    __tablename__ = "faculty"

    id = Column(String(36), primary_key=True)
    faculty_id_number = Column(String(50), unique=True, nullable=True)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    department = Column(String(255), nullable=True)
    status = Column(String(50), default="active")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.middle_name, self.last_name) if part)


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    building = Column(String(100), nullable=True)
    floor = Column(String(20), nullable=True)
    capacity = Column(Integer, nullable=True)


class Subject(Base):
    """Curriculum subject of a course"""
    __tablename__ = "subject"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(Integer, index=True, nullable=False)
    code = Column(String(50), nullable=False)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    units = Column(Numeric(4, 1), nullable=True)
    lecture = Column(Numeric(4, 1), nullable=True)
    laboratory = Column(Numeric(4, 1), nullable=True)
    prerequisite = Column(String(255), nullable=True)
    academic_year = Column(Integer, nullable=True)  # year level the subject belongs to
    semester = Column(Integer, nullable=True)
    group = Column(String(100), nullable=True)
    classification = Column(String(50), nullable=True)


class AcademicClass(Base):
    """Class offering as recorded locally"""
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_code = Column(String(50), nullable=False)
    subject_title = Column(String(255), nullable=True)
    section = Column(String(20), nullable=True)
    semester = Column(String(10), nullable=False)
    school_year = Column(String(20), nullable=False)
    faculty_id = Column(String(36), ForeignKey("faculty.id"), nullable=True, index=True)
    classification = Column(String(20), default="college")
    maximum_slots = Column(Integer, nullable=True)


class ClassSchedule(Base):
    """One weekly meeting of a class"""
    __tablename__ = "schedule"

    id = Column(Integer, primary_key=True, autoincrement=True)
    class_id = Column(Integer, ForeignKey("classes.id"), index=True, nullable=False)
    day_of_week = Column(String(20), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    deleted_at = Column(DateTime, nullable=True)


class StudentEnrollment(Base):
    """Per-period enrollment of a student (registrar view)"""
    __tablename__ = "student_enrollment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(BigInteger, index=True, nullable=False)
    course_id = Column(Integer, nullable=True)
    status = Column(String(50), nullable=True)
    semester = Column(String(10), nullable=False)
    academic_year = Column(Integer, nullable=True)
    school_year = Column(String(20), nullable=False)
    deleted_at = Column(DateTime, nullable=True)


class SubjectEnrollment(Base):
    """A student's seat in one class, or a subject credited without one"""
    __tablename__ = "subject_enrollments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(BigInteger, index=True, nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id"), index=True, nullable=True)
    subject_id = Column(Integer, ForeignKey("subject.id"), index=True, nullable=True)
    grade = Column(Numeric(5, 2), nullable=True)
    remarks = Column(String(255), nullable=True)
    instructor = Column(String(255), nullable=True)
    section = Column(String(20), nullable=True)
    is_credited = Column(Boolean, default=False, nullable=False)
    semester = Column(String(10), nullable=True)
    school_year = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class UserProfile(Base):
    """Profile metadata kept for each signed-in user"""
    __tablename__ = "user_profiles"

    user_id = Column(String(255), primary_key=True)
    semester = Column(String(10), nullable=True)
    school_year = Column(String(20), nullable=True)
    faculty_id = Column(String(36), nullable=True)
    student_id = Column(String(50), nullable=True)
    role = Column(String(20), nullable=True)
    extra = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<UserProfile {self.user_id}>"
