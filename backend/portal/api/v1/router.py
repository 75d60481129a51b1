from fastapi import APIRouter
from portal.api.v1.endpoints import auth, students, student, enrollment, faculty, classes, schedule, academic_periods, chat, debug
from portal.core.config import settings

api_router = APIRouter()


# Simple health check endpoint for load balancers
@api_router.get("/health", tags=["Health"])
async def health_check():
    return {"success": True, "status": "healthy", "service": "campus-portal-gateway"}


api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(students.router, prefix="/students", tags=["Students"])
api_router.include_router(student.router, prefix="/student", tags=["Student Views"])
api_router.include_router(enrollment.router, tags=["Enrollment"])
api_router.include_router(faculty.router, prefix="/faculty", tags=["Faculty"])
api_router.include_router(classes.router, prefix="/classes", tags=["Classes"])
api_router.include_router(schedule.router, prefix="/schedule", tags=["Schedule"])
api_router.include_router(academic_periods.router, tags=["Academic Periods"])
api_router.include_router(chat.router, tags=["Chat"])

# Session and enrollment inspection is only exposed in debug builds
if settings.DEBUG:
    api_router.include_router(debug.router, prefix="/debug", tags=["Debug"])
