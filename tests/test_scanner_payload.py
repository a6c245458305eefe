"""Tests for tag advertisement parsing."""

import pytest

from campusnav.scanner.payload import TagReading, parse_tag_payload


class TestParseTagPayload:
    def test_tag_payload(self):
        assert parse_tag_payload(b"FAC_101|TAG_01") == TagReading("FAC_101", "TAG_01")

    def test_reading_fields(self):
        reading = parse_tag_payload(b"FAC_205|TAG_09")
        assert reading is not None
        assert reading.faculty_id == "FAC_205"
        assert reading.tag_id == "TAG_09"

    def test_str_payload(self):
        assert parse_tag_payload("FAC_101|TAG_01") == TagReading("FAC_101", "TAG_01")

    def test_padding_stripped(self):
        assert parse_tag_payload(b" FAC_101|TAG_01\x00") == TagReading("FAC_101", "TAG_01")

    def test_empty_tag_id(self):
        assert parse_tag_payload(b"FAC_101|") == TagReading("FAC_101", None)

    def test_tag_id_keeps_later_separators(self):
        assert parse_tag_payload(b"FAC_101|TAG|01") == TagReading("FAC_101", "TAG|01")

    @pytest.mark.parametrize(
        "raw",
        [
            b"FAC_101",  # no separator
            b"STAFF_7|TAG_01",  # wrong prefix
            b"|TAG_01",
            b"FAC_|TAG_01",  # prefix only
            b"\x02\x15\xfd\xa5\x06\x93",
            b"",
        ],
    )
    def test_non_tag_traffic_dropped(self, raw):
        assert parse_tag_payload(raw) is None

    def test_custom_prefix(self):
        assert parse_tag_payload(b"STAFF_7|T7", prefix="STAFF_") == TagReading("STAFF_7", "T7")
