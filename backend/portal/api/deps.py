"""
FastAPI dependencies shared by the endpoint modules.

Tests swap these out through ``app.dependency_overrides``.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.database import get_db, get_session_local
from portal.services.academic_context import AcademicContextResolver
from portal.services.chat_service import ChatService, chat_service
from portal.services.class_settings_service import ClassSettingsService
from portal.services.grades_service import GradesService
from portal.services.profile_store import DatabaseProfileStore, ProfileStore
from portal.services.records_store import RecordsStore
from portal.services.student_subjects_service import StudentSubjectsService
from portal.services.upstream_client import UpstreamClient, upstream_client


def get_upstream_client() -> UpstreamClient:
    return upstream_client


def get_profile_store() -> ProfileStore:
    return DatabaseProfileStore(get_session_local())


def get_context_resolver(
    upstream: UpstreamClient = Depends(get_upstream_client),
    profiles: ProfileStore = Depends(get_profile_store),
) -> AcademicContextResolver:
    return AcademicContextResolver(upstream, profiles)


def get_class_settings_service(
    upstream: UpstreamClient = Depends(get_upstream_client),
) -> ClassSettingsService:
    return ClassSettingsService(upstream)


def get_grades_service(
    upstream: UpstreamClient = Depends(get_upstream_client),
) -> GradesService:
    return GradesService(upstream)


def get_records_store(db: AsyncSession = Depends(get_db)) -> RecordsStore:
    return RecordsStore(db)


def get_chat_service() -> ChatService:
    return chat_service


def get_student_subjects_service(
    upstream: UpstreamClient = Depends(get_upstream_client),
) -> StudentSubjectsService:
    return StudentSubjectsService(upstream)
