"""
Unit Tests for class settings read-merge-write
"""
import pytest

from portal.core.exceptions import NotFoundError, UpstreamError, ValidationError
from portal.services.cache_service import CacheService
from portal.services.class_settings_service import (
    ClassSettingsService,
    build_class_update_payload,
    merge_settings,
    settings_patch,
)

from mocks.upstream_stub import class_record


class TestSettingsPatch:

    def test_nested_camel_case(self):
        patch = settings_patch({"features": {"enableAnnouncements": False}})
        assert patch == {"visual": {}, "features": {"enable_announcements": False}}

    def test_flat_leaves(self):
        patch = settings_patch({"theme": "blue", "allow_late_submissions": True})

        assert patch["visual"] == {"theme": "blue"}
        assert patch["features"] == {"allow_late_submissions": True}

    def test_unknown_keys_are_ignored(self):
        assert settings_patch({"color": "red"}) == {"visual": {}, "features": {}}


class TestMergeSettings:

    def test_only_supplied_leaf_changes(self):
        current = class_record()["settings"]

        merged = merge_settings(current, {"features": {"enableAnnouncements": False}})

        assert merged["visual"] == current["visual"]
        assert merged["features"] == {**current["features"], "enable_announcements": False}

    def test_missing_settings_start_from_defaults(self):
        merged = merge_settings(None, {"visual": {"theme": "blue"}})

        assert merged["visual"]["theme"] == "blue"
        assert merged["features"]["enable_announcements"] is True


class TestBuildPayload:

    def test_every_other_field_is_copied(self):
        current = class_record()
        baseline = build_class_update_payload(current, {})

        payload = build_class_update_payload(current, {"features": {"enableAnnouncements": False}})

        changed = {key for key in payload if payload[key] != baseline[key]}
        assert changed == {"settings"}
        assert payload["settings"]["visual"] == baseline["settings"]["visual"]
        changed_leaves = {
            leaf for leaf, value in payload["settings"]["features"].items()
            if value != baseline["settings"]["features"][leaf]
        }
        assert changed_leaves == {"enable_announcements"}
        # The stored record had announcements on
        assert baseline["settings"]["features"]["enable_announcements"] is True

    def test_required_fields_come_from_record(self):
        payload = build_class_update_payload(class_record(), {})

        assert payload["subject_id"] == 501
        assert payload["subject_ids"] == [501, 502]
        assert payload["course_codes"] == [11, 12]
        assert payload["faculty_id"] == "fac-1"
        assert payload["section"] == "A"
        assert payload["semester"] == "1"
        assert payload["school_year"] == "2025-2026"
        assert payload["maximum_slots"] == 40
        assert payload["room_id"] == 5
        assert payload["schedule_id"] == 77

    def test_college_class_sends_null_shs_fields(self):
        record = class_record(shs_information={
            "grade_level": "11",
            "track": {"id": 3},
            "strand": {"id": ""},
        })

        payload = build_class_update_payload(record, {"theme": "blue"})

        assert payload["grade_level"] is None
        assert payload["shs_track_id"] is None
        assert payload["shs_strand_id"] is None

    def test_shs_class_keeps_shs_fields(self):
        record = class_record(classification="shs", shs_information={
            "grade_level": "11",
            "track": {"id": 3},
            "strand": {"id": ""},
        })

        payload = build_class_update_payload(record, {})

        assert payload["grade_level"] == "11"
        assert payload["shs_track_id"] == 3
        assert payload["shs_strand_id"] is None


class TestUpdateClassSettings:

    @pytest.mark.asyncio
    async def test_reads_then_puts_full_record(self, upstream, upstream_stub):
        upstream_stub.add("GET", "/api/classes/9", body={"data": class_record(9)})
        upstream_stub.add("PUT", "/api/classes/9", body={"data": {"id": 9}})
        service = ClassSettingsService(upstream)

        result = await service.update_class_settings(9, {"features": {"enableAnnouncements": False}})

        sent = upstream_stub.last_json("PUT", "/api/classes/9")
        assert sent["settings"]["features"]["enable_announcements"] is False
        assert sent["grade_level"] is None
        assert result["settings"]["features"]["enableAnnouncements"] is False
        assert set(result) == {"classId", "settings"}
        assert sent["settings"]["visual"]["theme"] == "dark"
        methods = [request.method for request in upstream_stub.requests]
        assert methods == ["GET", "PUT"]

    @pytest.mark.asyncio
    async def test_cache_invalidated_after_write(self, upstream, upstream_stub):
        upstream_stub.add("GET", "/api/classes/9", body={"data": class_record(9)})
        upstream_stub.add("PUT", "/api/classes/9", body={"data": {"id": 9}})
        await upstream.get_class_details(9)
        assert CacheService.class_key(9) in upstream.cache

        await ClassSettingsService(upstream).update_class_settings(9, {"theme": "blue"})

        assert CacheService.class_key(9) not in upstream.cache

    @pytest.mark.asyncio
    async def test_cache_invalidated_when_write_fails(self, upstream, upstream_stub):
        upstream_stub.add("GET", "/api/classes/9", body={"data": class_record(9)})
        upstream_stub.add("PUT", "/api/classes/9", status=500, body={"message": "timeout writing"})

        with pytest.raises(UpstreamError):
            await ClassSettingsService(upstream).update_class_settings(9, {"theme": "blue"})

        assert CacheService.class_key(9) not in upstream.cache

    @pytest.mark.asyncio
    async def test_validation_errors_surface_verbatim(self, upstream, upstream_stub):
        upstream_stub.add("GET", "/api/classes/9", body={"data": class_record(9)})
        upstream_stub.add("PUT", "/api/classes/9", status=422, body={
            "message": "The given data was invalid.",
            "errors": {"room_id": ["The selected room id is invalid."]},
        })

        with pytest.raises(ValidationError) as exc_info:
            await ClassSettingsService(upstream).update_class_settings(9, {"theme": "blue"})

        assert exc_info.value.field_errors == {"room_id": ["The selected room id is invalid."]}
        assert len(upstream_stub.calls("PUT", "/api/classes/9")) == 1

    @pytest.mark.asyncio
    async def test_missing_class_never_writes(self, upstream, upstream_stub):
        upstream_stub.add("GET", "/api/classes/9", status=404, body={"message": "Not found"})

        with pytest.raises(NotFoundError):
            await ClassSettingsService(upstream).update_class_settings(9, {"theme": "blue"})

        assert upstream_stub.calls("PUT", "/api/classes/9") == []
