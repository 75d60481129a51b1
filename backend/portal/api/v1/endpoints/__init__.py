# API endpoints
from . import auth, students, student, enrollment, faculty, classes, schedule, academic_periods, chat, debug

__all__ = ["auth", "students", "student", "enrollment", "faculty", "classes", "schedule", "academic_periods", "chat", "debug"]
