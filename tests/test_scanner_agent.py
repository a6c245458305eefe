"""Tests for the room scanner agent."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from campusnav.config import Settings
from campusnav.ingest.base import Detection
from campusnav.scanner.agent import RoomScanner, build_scanner
from campusnav.scanner.publisher import HttpDetectionPublisher, MqttDetectionPublisher
from campusnav.scanner.sources import (
    Advertisement,
    AdvertisementSource,
    MockAdvertisementSource,
    ScannerStartupError,
)


class _FakeSource(AdvertisementSource):
    """Replays canned scan windows, one per collect() call."""

    def __init__(self, *windows: list[tuple[bytes, int]] | Exception) -> None:
        self.windows = list(windows)
        self.calls = 0
        self.scanner: RoomScanner | None = None

    async def collect(self, duration: float) -> list[Advertisement]:
        self.calls += 1
        await asyncio.sleep(0)
        if not self.windows:
            if self.scanner is not None:
                self.scanner.stop()
            return []
        window = self.windows.pop(0)
        if isinstance(window, Exception):
            raise window
        return [Advertisement(payload=p, rssi=r) for p, r in window]


def _make_scanner(source: AdvertisementSource, publisher=None, **kwargs) -> RoomScanner:
    if publisher is None:
        publisher = AsyncMock()
        publisher.publish = AsyncMock(return_value=True)
    return RoomScanner(
        scanner_id="SC_D103",
        room="D103",
        source=source,
        publisher=publisher,
        scan_time=0,
        cycle_period=0,
        **kwargs,
    )


class TestRunCycle:
    @pytest.mark.asyncio
    async def test_one_detection_per_faculty_with_max_rssi(self):
        source = _FakeSource(
            [
                (b"FAC_101|TAG_A", -70),
                (b"FAC_101|TAG_B", -50),
                (b"FAC_101|TAG_C", -90),
            ]
        )
        scanner = _make_scanner(source)
        detections = await scanner.run_cycle()

        assert detections == [
            Detection(
                faculty_id="FAC_101",
                tag_id="TAG_B",
                scanner_id="SC_D103",
                room="D103",
                rssi=-50,
            )
        ]
        scanner.publisher.publish.assert_awaited_once_with(detections)

    @pytest.mark.asyncio
    async def test_non_tag_traffic_ignored(self):
        source = _FakeSource(
            [
                (b"AirPods", -40),
                (b"FAC_999", -40),
                (b"STAFF_1|T1", -40),
                (b"FAC_102|TAG_02", -75),
            ]
        )
        detections = await _make_scanner(source).run_cycle()
        assert [d.faculty_id for d in detections] == ["FAC_102"]

    @pytest.mark.asyncio
    async def test_overflow_emits_capacity_and_continues(self):
        crowded = [(f"FAC_{100 + i}|T{i}".encode(), -60) for i in range(11)]
        source = _FakeSource(crowded, [(b"FAC_200|T", -60)])
        scanner = _make_scanner(source, buffer_size=10)

        first = await scanner.run_cycle()
        assert len(first) == 10
        assert "FAC_110" not in {d.faculty_id for d in first}

        second = await scanner.run_cycle()
        assert [d.faculty_id for d in second] == ["FAC_200"]

    @pytest.mark.asyncio
    async def test_buffer_reset_between_cycles(self):
        source = _FakeSource([(b"FAC_101|T", -40)], [(b"FAC_101|T", -85)])
        scanner = _make_scanner(source)
        await scanner.run_cycle()
        second = await scanner.run_cycle()
        assert second[0].rssi == -85

    @pytest.mark.asyncio
    async def test_empty_cycle_skips_publish(self):
        scanner = _make_scanner(_FakeSource([]))
        assert await scanner.run_cycle() == []
        scanner.publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_raise(self):
        publisher = AsyncMock()
        publisher.publish = AsyncMock(return_value=False)
        scanner = _make_scanner(_FakeSource([(b"FAC_101|T", -60)]), publisher=publisher)
        detections = await scanner.run_cycle()
        assert len(detections) == 1


class TestRunForever:
    @pytest.mark.asyncio
    async def test_cycles_until_stopped(self):
        source = _FakeSource([(b"FAC_101|T", -60)], [(b"FAC_102|T", -60)])
        scanner = _make_scanner(source)
        source.scanner = scanner

        await asyncio.wait_for(scanner.run_forever(), timeout=1)

        assert source.calls == 3
        assert scanner.publisher.publish.await_count == 2

    @pytest.mark.asyncio
    async def test_cycle_error_does_not_stop_loop(self):
        source = _FakeSource(RuntimeError("radio glitch"), [(b"FAC_101|T", -60)])
        scanner = _make_scanner(source)
        source.scanner = scanner

        await asyncio.wait_for(scanner.run_forever(), timeout=1)

        assert source.calls == 3
        scanner.publisher.publish.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_startup_failure_is_fatal(self):
        source = _FakeSource()
        source.open = AsyncMock(side_effect=ScannerStartupError("no adapter"))
        scanner = _make_scanner(source)
        with pytest.raises(ScannerStartupError):
            await scanner.run_forever()
        assert source.calls == 0


class TestBuildScanner:
    def test_mqtt_transport(self):
        cfg = Settings(
            scanner_id="SC_A201",
            scanner_room="A201",
            scanner_source="mock",
            scanner_transport="mqtt",
            mqtt_host="broker.local",
        )
        scanner = build_scanner(cfg)
        assert scanner.scanner_id == "SC_A201"
        assert scanner.room == "A201"
        assert isinstance(scanner.source, MockAdvertisementSource)
        assert isinstance(scanner.publisher, MqttDetectionPublisher)
        assert scanner.publisher.topic == "campusnav/faculty/SC_A201"

    def test_http_transport(self):
        cfg = Settings(
            scanner_source="mock", scanner_transport="http", backend_url="http://api:8000/"
        )
        scanner = build_scanner(cfg)
        assert isinstance(scanner.publisher, HttpDetectionPublisher)
        assert scanner.publisher.base_url == "http://api:8000"

    def test_mqtt_without_host_is_fatal(self):
        cfg = Settings(scanner_source="mock", scanner_transport="mqtt", mqtt_host=None)
        with pytest.raises(ScannerStartupError):
            build_scanner(cfg)


class TestMain:
    def test_startup_error_exits_nonzero(self):
        from campusnav.scanner import agent

        cfg = Settings(scanner_transport="mqtt", mqtt_host=None)
        with patch.object(agent, "load_config", return_value=cfg):
            with pytest.raises(SystemExit) as exc_info:
                agent.main()
        assert exc_info.value.code == 1


class TestMockAdvertisementSource:
    @pytest.mark.asyncio
    async def test_mock_room_yields_known_faculty(self):
        scanner = _make_scanner(MockAdvertisementSource())
        detections = await scanner.run_cycle()
        assert {d.faculty_id for d in detections} == {"FAC_101", "FAC_102", "FAC_103"}
        assert all(-120 <= d.rssi <= 0 for d in detections)
