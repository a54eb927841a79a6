"""End-to-end runs against a fake desk."""

import asyncio
from unittest.mock import MagicMock

import pytest
from bleak.exc import BleakError

from desk_mover.config import DeskSettings
from desk_mover.errors import (
    DeskConnectionError,
    DeviceNotFoundError,
    EndpointMissingError,
    ScanStartError,
    ServiceDiscoveryError,
)
from desk_mover.motion import MotionState
from desk_mover.orchestrator import SessionOrchestrator
from desk_mover.protocol import CMD_STOP, CMD_UP, UUID_HEIGHT

from .fakes import DESK_ADDRESS, FakeDeskClient, FakeScanner, FakeServices

FAST = DeskSettings(scan_attempts=5, scan_delay=0, settle_delay=0)


def make_orchestrator(scanner, client, settings=FAST):
    lines: list[str] = []
    client_factory = MagicMock(return_value=client)
    orchestrator = SessionOrchestrator(
        settings,
        scanner_factory=MagicMock(return_value=scanner),
        client_factory=client_factory,
        report=lines.append,
    )
    return orchestrator, client_factory, lines


async def test_move_to_900():
    scanner = FakeScanner()
    client = FakeDeskClient(height_mm=820, step_mm=10)
    orchestrator, _, lines = make_orchestrator(scanner, client)

    outcome = await orchestrator.run(DESK_ADDRESS, 900)

    assert outcome.ok
    assert outcome.error is None
    assert outcome.result.setpoint == 880
    assert set(client.commands[:-1]) == {CMD_UP}
    assert client.commands.count(CMD_STOP) == 1
    assert client.commands[-1] == CMD_STOP
    assert 870 <= outcome.result.final_height <= 890
    assert lines[:3] == ["Scanning...", "Connecting...", "Moving..."]
    assert lines[-1] == "Disconnecting..."
    client.disconnect.assert_awaited_once()
    scanner.stop.assert_awaited_once()


async def test_already_at_target():
    client = FakeDeskClient(height_mm=1000)
    orchestrator, _, _ = make_orchestrator(FakeScanner(), client)

    outcome = await orchestrator.run(DESK_ADDRESS, 1020)

    assert outcome.ok
    assert outcome.result.state is MotionState.CONVERGED
    assert client.commands == []
    client.disconnect.assert_awaited_once()


async def test_device_not_found():
    scanner = FakeScanner(visible_from=None)
    client = FakeDeskClient()
    orchestrator, client_factory, lines = make_orchestrator(scanner, client)

    outcome = await orchestrator.run(DESK_ADDRESS, 900)

    assert not outcome.ok
    assert isinstance(outcome.error, DeviceNotFoundError)
    assert scanner.polls == 5
    client_factory.assert_not_called()
    client.connect.assert_not_awaited()
    assert lines == ["Scanning...", f"Could not find device [{DESK_ADDRESS}]"]


async def test_scan_failure():
    scanner = FakeScanner(start_error=BleakError("No Bluetooth adapters found."))
    orchestrator, client_factory, lines = make_orchestrator(scanner, FakeDeskClient())

    outcome = await orchestrator.run(DESK_ADDRESS, 900)

    assert isinstance(outcome.error, ScanStartError)
    assert lines == ["Scanning...", "Failed to scan!"]
    client_factory.assert_not_called()


async def test_connect_failure():
    client = FakeDeskClient(connect_error=BleakError("Device not found"))
    orchestrator, _, lines = make_orchestrator(FakeScanner(), client)

    outcome = await orchestrator.run(DESK_ADDRESS, 900)

    assert isinstance(outcome.error, DeskConnectionError)
    assert lines[-1] == "Failed to connect!"
    assert client.commands == []
    client.disconnect.assert_not_awaited()


async def test_discovery_failure_still_disconnects():
    client = FakeDeskClient(discovery_error=True)
    orchestrator, _, lines = make_orchestrator(FakeScanner(), client)

    outcome = await orchestrator.run(DESK_ADDRESS, 900)

    assert isinstance(outcome.error, ServiceDiscoveryError)
    assert lines[-2:] == ["Failed to discover services!", "Disconnecting..."]
    assert client.reads == 0
    client.disconnect.assert_awaited_once()


async def test_missing_command_endpoint():
    client = FakeDeskClient(services=FakeServices((UUID_HEIGHT,)))
    orchestrator, _, lines = make_orchestrator(FakeScanner(), client)

    outcome = await orchestrator.run(DESK_ADDRESS, 900)

    assert isinstance(outcome.error, EndpointMissingError)
    assert outcome.error.kind == "command"
    assert "Missing command characteristic!" in lines
    assert client.commands == []
    assert client.reads == 0
    client.disconnect.assert_awaited_once()


async def test_disconnect_failure_is_reported():
    client = FakeDeskClient(height_mm=820, disconnect_error=BleakError("not connected"))
    orchestrator, _, lines = make_orchestrator(FakeScanner(), client)

    outcome = await orchestrator.run(DESK_ADDRESS, 900)

    assert outcome.ok
    assert outcome.disconnect_error is not None
    assert lines[-2:] == ["Disconnecting...", "Failed to disconnect!"]


async def test_adapter_is_passed_to_transport():
    settings = DeskSettings(adapter="hci1", scan_delay=0, settle_delay=0)
    scanner = FakeScanner()
    client = FakeDeskClient(height_mm=900)
    orchestrator, client_factory, _ = make_orchestrator(scanner, client, settings)

    await orchestrator.run(DESK_ADDRESS, 920)

    orchestrator.scanner_factory.assert_called_once_with(adapter="hci1")
    assert client_factory.call_args.kwargs == {"adapter": "hci1"}


async def test_quiet_run():
    client = FakeDeskClient(height_mm=820)
    orchestrator, _, lines = make_orchestrator(FakeScanner(), client)
    orchestrator.quiet = True

    outcome = await orchestrator.run(DESK_ADDRESS, 900)

    assert outcome.ok
    assert lines == []


async def test_interrupted_move_sends_stop():
    # cancelled on the third read, i.e. mid-move
    client = FakeDeskClient(height_mm=820, cancel_on_read=3)
    orchestrator, _, lines = make_orchestrator(FakeScanner(), client)

    with pytest.raises(asyncio.CancelledError):
        await orchestrator.run(DESK_ADDRESS, 900)

    assert client.commands == [CMD_UP, CMD_UP, CMD_STOP]
    assert lines[-2:] == ["Stopping...", "Disconnecting..."]
    client.disconnect.assert_awaited_once()


async def test_completed_move_sends_single_stop():
    client = FakeDeskClient(height_mm=820)
    orchestrator, _, lines = make_orchestrator(FakeScanner(), client)

    await orchestrator.run(DESK_ADDRESS, 900)

    assert client.commands.count(CMD_STOP) == 1
    assert "Stopping..." not in lines
