"""
Upstream Client - the only component that talks to the academic-records backend.

Responsibilities:
- Authenticated requests (bearer token, JSON accept header)
- Mapping upstream failures to typed errors
- Short-lived response cache for class details
- Parallel batch fetches that keep going when single items fail

Responses are returned as loosely-typed dicts/lists; ``portal.services.normalizer``
is the only place that interprets their shape.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

import httpx

from portal.core.config import settings
from portal.core.exceptions import (
    NotFoundError,
    UpstreamError,
    UpstreamUnavailableError,
    ValidationError,
)
from portal.core.logging_config import logger
from portal.services.cache_service import CacheService

T = TypeVar("T")

# (form field name, (filename, content, content type))
FilePart = Tuple[str, Tuple[str, bytes, str]]


@dataclass
class BatchResult(Generic[T]):
    """Outcome of one item of a batch fetch"""

    key: Any
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle_all(
    keys: Iterable[Any],
    fetch_one: Callable[[Any], Awaitable[T]],
) -> List[BatchResult[T]]:
    """
    Run fetch_one for every key concurrently and wait for all of them.

    Never short-circuits: each key gets a BatchResult carrying either its value
    or the exception it raised, in the order the keys were given.
    """
    keys = list(keys)
    outcomes = await asyncio.gather(*(fetch_one(key) for key in keys), return_exceptions=True)

    results: List[BatchResult[T]] = []
    for key, outcome in zip(keys, outcomes):
        if isinstance(outcome, Exception):
            results.append(BatchResult(key=key, error=outcome))
        elif isinstance(outcome, BaseException):
            # Cancellation and interpreter exits are not per-item failures
            raise outcome
        else:
            results.append(BatchResult(key=key, value=outcome))
    return results


def _unwrap(payload: Any) -> Any:
    """Upstream wraps most resources as {"data": ...}"""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _as_list(payload: Any) -> List[Any]:
    data = _unwrap(payload)
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("items", "results", "enrollments"):
            if isinstance(data.get(key), list):
                return data[key]
    return []


def _field_errors(raw: Any) -> Dict[str, List[str]]:
    """Coerce upstream validation errors into {field: [message, ...]}"""
    if not isinstance(raw, dict):
        return {}
    errors: Dict[str, List[str]] = {}
    for field_name, messages in raw.items():
        if isinstance(messages, (list, tuple)):
            errors[str(field_name)] = [str(m) for m in messages]
        elif messages is not None:
            errors[str(field_name)] = [str(messages)]
    return errors


class UpstreamClient:
    """Async client for the academic-records backend"""

    FACULTY_ENDPOINT = "/api/faculties/"

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        cache: Optional[CacheService] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.UPSTREAM_API_URL).rstrip("/")
        self.token = settings.UPSTREAM_API_TOKEN if token is None else token
        self.cache = cache if cache is not None else CacheService()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(
                    settings.UPSTREAM_REQUEST_TIMEOUT,
                    connect=settings.UPSTREAM_CONNECT_TIMEOUT,
                ),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ========== Core request ==========

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Sequence[FilePart]] = None,
    ) -> Any:
        """
        Send one request to the backend and return the parsed JSON body.

        Raises:
            ValidationError: upstream answered 422
            NotFoundError: upstream answered 404 on a faculty endpoint
            UpstreamError: any other non-2xx answer
            UpstreamUnavailableError: the backend could not be reached
        """
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.token}",
        }
        # Multipart bodies get their boundary from httpx
        if json is not None:
            headers["Content-Type"] = "application/json"

        start = time.perf_counter()
        try:
            response = await self._get_client().request(
                method,
                endpoint,
                json=json,
                params=params,
                data=data,
                files=files,
                headers=headers,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"[Upstream] Timeout on {method} {endpoint}: {e}")
            raise UpstreamUnavailableError(f"Upstream timed out on {endpoint}", endpoint=endpoint) from e
        except httpx.RequestError as e:
            logger.warning(f"[Upstream] Request error on {method} {endpoint}: {type(e).__name__}: {e}")
            raise UpstreamUnavailableError(f"Upstream unreachable on {endpoint}", endpoint=endpoint) from e

        duration_ms = (time.perf_counter() - start) * 1000
        logger.log_upstream_call(method, endpoint, response.status_code, duration_ms)

        if response.is_success:
            return self._parse_body(response)

        raise self._map_error(response, method, endpoint)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _map_error(self, response: httpx.Response, method: str, endpoint: str) -> Exception:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        status = response.status_code
        message = body.get("message") or body.get("error") or response.reason_phrase or f"Upstream request failed with status {status}"
        message = str(message)

        logger.warning(
            f"[Upstream] {method} {endpoint} failed: {status} {message}",
            extra={"upstream_status": status, "upstream_endpoint": endpoint},
        )

        if status == 422:
            return ValidationError(message, _field_errors(body.get("errors")))

        if status == 404 and self.FACULTY_ENDPOINT in endpoint:
            faculty_id = endpoint.split(self.FACULTY_ENDPOINT, 1)[1].split("/")[0].split("?")[0]
            return NotFoundError("faculty", faculty_id)

        return UpstreamError(status, message, endpoint=endpoint)

    # ========== Cache ==========

    def get_cached(self, key: str) -> Optional[Any]:
        return self.cache.get(key)

    def set_cache(self, key: str, value: Any) -> None:
        self.cache.set(key, value)

    def invalidate(self, key: str) -> bool:
        return self.cache.invalidate(key)

    # ========== Batch ==========

    async def get_batch(
        self,
        ids: Iterable[Any],
        fetch_one: Callable[[Any], Awaitable[T]],
    ) -> List[T]:
        """
        Fetch every id in parallel and return the successes.

        A failing id is logged and left out of the result, so the result may
        hold fewer items than ids requested.
        """
        results = await settle_all(ids, fetch_one)
        for result in results:
            if not result.ok:
                logger.warning(
                    f"[Upstream] Batch item {result.key} dropped: "
                    f"{type(result.error).__name__}: {result.error}"
                )
        return [result.value for result in results if result.ok]

    # ========== Faculty ==========

    async def get_faculty(self, faculty_id: str) -> Dict[str, Any]:
        payload = await self.request(f"{self.FACULTY_ENDPOINT}{faculty_id}")
        data = _unwrap(payload)
        if not isinstance(data, dict) or not data:
            raise NotFoundError("faculty", faculty_id)
        return data

    async def get_faculty_classes(self, faculty_id: str) -> List[Dict[str, Any]]:
        faculty = await self.get_faculty(faculty_id)
        return faculty.get("classes") or []

    async def find_faculty_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        matches = _as_list(await self.request("/api/faculties", params={"filter[email]": email}))
        return matches[0] if matches else None

    # ========== Classes ==========

    async def get_class_details(self, class_id: Any) -> Dict[str, Any]:
        """Class details, served from cache while fresh"""
        key = CacheService.class_key(class_id)
        cached = self.get_cached(key)
        if cached is not None:
            return cached

        try:
            payload = await self.request(f"/api/classes/{class_id}")
        except UpstreamError as e:
            if e.status == 404:
                raise NotFoundError("class", class_id) from e
            raise

        data = _unwrap(payload)
        if not isinstance(data, dict) or not data:
            raise NotFoundError("class", class_id)

        self.set_cache(key, data)
        return data

    async def get_batch_class_details(self, class_ids: Iterable[Any]) -> List[Dict[str, Any]]:
        return await self.get_batch(class_ids, self.get_class_details)

    async def update_class(self, class_id: Any, payload: Dict[str, Any]) -> Any:
        """Full-record class update"""
        return _unwrap(await self.request(f"/api/classes/{class_id}", method="PUT", json=payload))

    # ========== Academic settings ==========

    async def get_current_settings(self) -> Dict[str, Any]:
        data = _unwrap(await self.request("/api/general-settings"))
        return data if isinstance(data, dict) else {}

    # ========== Enrollments & grades ==========

    async def get_class_enrollments(self, class_id: Any) -> List[Dict[str, Any]]:
        return _as_list(await self.request(f"/api/class-enrollments/class/{class_id}"))

    async def get_student_class_enrollments(self, student_id: Any) -> List[Dict[str, Any]]:
        """Every class seat of one student, with grade columns"""
        return _as_list(await self.request(f"/api/class-enrollments/student/{student_id}"))

    async def update_class_enrollment(self, enrollment_id: Any, payload: Dict[str, Any]) -> Any:
        return _unwrap(
            await self.request(f"/api/class-enrollments/{enrollment_id}", method="PUT", json=payload)
        )

    async def get_student_enrollments(
        self,
        student_id: str,
        semester: Optional[str] = None,
        school_year: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params = {"student_id": student_id}
        if semester:
            params["semester"] = semester
        if school_year:
            params["school_year"] = school_year
        return _as_list(await self.request("/api/student-enrollments", params=params))

    # ========== Students ==========

    async def get_student(self, student_id: Any) -> Dict[str, Any]:
        try:
            payload = await self.request(f"/api/students/{student_id}")
        except UpstreamError as e:
            if e.status == 404:
                raise NotFoundError("student", student_id) from e
            raise
        data = _unwrap(payload)
        if not isinstance(data, dict) or not data:
            raise NotFoundError("student", student_id)
        return data

    async def find_student_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        matches = _as_list(await self.request("/api/students", params={"filter[email]": email}))
        return matches[0] if matches else None

    # ========== Attendance ==========

    async def get_class_attendance(self, class_id: Any) -> List[Dict[str, Any]]:
        return _as_list(await self.request(f"/api/attendances/{class_id}"))

    async def mark_attendance(self, payload: Dict[str, Any]) -> Any:
        return _unwrap(await self.request("/api/attendance", method="POST", json=payload))

    # ========== Class posts (announcements) ==========

    async def get_class_posts(self, class_id: Any) -> List[Dict[str, Any]]:
        return _as_list(await self.request("/api/class-posts", params={"class_id": class_id}))

    async def create_class_post(
        self,
        fields: Dict[str, Any],
        files: Optional[Sequence[FilePart]] = None,
    ) -> Any:
        """Create a post as multipart form data; attachments ride along as files"""
        form = {key: str(value) for key, value in fields.items() if value is not None}
        return _unwrap(
            await self.request("/api/class-posts", method="POST", data=form, files=list(files) if files else None)
        )


# Singleton instance
upstream_client = UpstreamClient()
