"""
Unit tests for the ShareRecord entity.
"""

from datetime import datetime, timedelta, timezone

from codedrop.domain.sharing import ShareRecord, ShareStatus


def make_record(**overrides) -> ShareRecord:
    fields = {
        "code": "code123",
        "stored_name": "f00d/holiday.jpg",
        "created_at": datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return ShareRecord(**fields)


class TestDerivedProperties:
    def test_download_name_defaults_to_stored_base_name(self):
        assert make_record().download_name == "holiday.jpg"

    def test_display_name_overrides_download_name(self):
        assert make_record(display_name="beach.jpg").download_name == "beach.jpg"

    def test_remaining_downloads(self):
        assert make_record().remaining_downloads() is None
        assert make_record(max_downloads=3, download_count=1).remaining_downloads() == 2

    def test_with_download_counted_does_not_mutate(self):
        record = make_record(download_count=1)

        counted = record.with_download_counted()

        assert counted.download_count == 2
        assert record.download_count == 1


class TestStatus:
    def test_active(self, fixed_now):
        assert make_record().status(fixed_now) is ShareStatus.ACTIVE

    def test_expired_only_after_expiry_instant(self, fixed_now):
        record = make_record(expires_at=fixed_now)

        assert record.status(fixed_now) is ShareStatus.ACTIVE
        assert record.status(fixed_now + timedelta(microseconds=1)) is ShareStatus.EXPIRED

    def test_limit_reached(self, fixed_now):
        record = make_record(max_downloads=2, download_count=2)

        assert record.status(fixed_now) is ShareStatus.LIMIT_REACHED

    def test_missing_payload_is_deleted_regardless_of_other_fields(self, fixed_now):
        record = make_record(expires_at=fixed_now - timedelta(days=1), max_downloads=1)

        assert record.status(fixed_now, payload_present=False) is ShareStatus.DELETED


class TestSerialization:
    def test_round_trip(self, fixed_now):
        record = make_record(
            display_name="beach.jpg",
            password_secret="secret",
            password_scheme="plaintext",
            expires_at=fixed_now + timedelta(hours=1),
            max_downloads=5,
            download_count=2,
            threat_flagged=True,
            threat_detail="EICAR test signature",
        )

        assert ShareRecord.from_dict(record.to_dict()) == record

    def test_unknown_fields_are_ignored(self):
        data = make_record().to_dict()
        data["uploader_ip"] = "10.0.0.1"

        assert ShareRecord.from_dict(data).code == "code123"

    def test_minimal_layout_defaults_to_unset_policy(self):
        record = ShareRecord.from_dict({"stored_name": "x/y.txt"}, code="abc")

        assert record.code == "abc"
        assert record.password_secret is None
        assert record.expires_at is None
        assert record.max_downloads is None
        assert record.download_count == 0
        assert record.threat_flagged is False

    def test_naive_timestamps_are_read_as_utc(self):
        record = ShareRecord.from_dict(
            {"stored_name": "x/y.txt", "expires_at": "2024-01-15T12:00:00"}, code="abc"
        )

        assert record.expires_at == datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
