"""
Profile Store - per-user profile metadata.

Profiles carry the caller's remembered academic period and the upstream ids
(faculty / student) linked to the account. Components receive a ProfileStore
instead of reaching for global session state.
"""

from typing import Any, Callable, Dict, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.logging_config import logger
from portal.models.academic import UserProfile

# camelCase profile key -> UserProfile column
PROFILE_COLUMNS = {
    "semester": "semester",
    "schoolYear": "school_year",
    "facultyId": "faculty_id",
    "studentId": "student_id",
    "role": "role",
}


class ProfileStore(Protocol):
    async def read(self, user_id: str) -> Dict[str, Any]:
        ...

    async def write(self, user_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        ...


def profile_to_dict(profile: Optional[UserProfile]) -> Dict[str, Any]:
    if profile is None:
        return {}
    data = {key: getattr(profile, column) for key, column in PROFILE_COLUMNS.items()}
    data["metadata"] = dict(profile.extra or {})
    return {key: value for key, value in data.items() if value not in (None, {})}


class DatabaseProfileStore:
    """ProfileStore backed by the user_profiles table"""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    async def read(self, user_id: str) -> Dict[str, Any]:
        async with self._session_factory() as session:
            result = await session.execute(select(UserProfile).where(UserProfile.user_id == user_id))
            return profile_to_dict(result.scalar_one_or_none())

    async def write(self, user_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge ``patch`` into the stored profile and return the result.

        Known keys update their column; ``metadata`` is merged key by key;
        other keys are kept in metadata as well.
        """
        async with self._session_factory() as session:
            result = await session.execute(select(UserProfile).where(UserProfile.user_id == user_id))
            profile = result.scalar_one_or_none()
            if profile is None:
                profile = UserProfile(user_id=user_id, extra={})
                session.add(profile)

            extra = dict(profile.extra or {})
            for key, value in patch.items():
                if key in PROFILE_COLUMNS:
                    setattr(profile, PROFILE_COLUMNS[key], None if value is None else str(value))
                elif key == "metadata" and isinstance(value, dict):
                    extra.update(value)
                else:
                    extra[key] = value
            # Reassign so the JSON column is flagged dirty
            profile.extra = extra

            await session.commit()
            logger.debug(f"[Profile] Updated {user_id}: {sorted(patch)}")
            return profile_to_dict(profile)
