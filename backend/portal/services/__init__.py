from portal.services.cache_service import CacheService
from portal.services.upstream_client import UpstreamClient, upstream_client, settle_all, BatchResult
from portal.services.academic_context import AcademicContextResolver, AcademicPeriod, ResolvedPeriod
from portal.services.profile_store import ProfileStore, DatabaseProfileStore
from portal.services.class_settings_service import ClassSettingsService
from portal.services.grades_service import GradesService
from portal.services.student_subjects_service import StudentSubjectsService
from portal.services.records_store import RecordsStore
from portal.services.chat_service import ChatService, chat_service

__all__ = [
    # Upstream access
    "CacheService",
    "UpstreamClient",
    "upstream_client",
    "settle_all",
    "BatchResult",
    # Request context
    "AcademicContextResolver",
    "AcademicPeriod",
    "ResolvedPeriod",
    "ProfileStore",
    "DatabaseProfileStore",
    # Writes
    "ClassSettingsService",
    "GradesService",
    # Student views
    "StudentSubjectsService",
    # Local records
    "RecordsStore",
    # Assistant
    "ChatService",
    "chat_service",
]
