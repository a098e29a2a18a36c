"""Tests for background service startup and shutdown."""
import asyncio
import socket

import pytest
from fastapi.testclient import TestClient

from pressure_monitor.core.config_loader import config_loader
from pressure_monitor.core.event_hub import event_hub
from pressure_monitor.core.models.config_data import configData
from pressure_monitor.core.service_manager import ServiceManager
from pressure_monitor.core.services.connection_controller import connection_controller
from pressure_monitor.core.services.recorder import DirectoryFileWriter
from pressure_monitor.main import Settings, app


@pytest.fixture
def manager(monkeypatch):
    # Restore the controller's recorder after the log-dir override
    monkeypatch.setattr(connection_controller, "recorder", connection_controller.recorder)
    monkeypatch.setattr(config_loader, "_config", configData(device_port=0, emulation_interval=0.001))
    return ServiceManager()


class TestServiceManager:

    def test_log_dir_override(self, manager, tmp_path):
        async def run():
            await manager.start_services(log_dir=tmp_path)
            assert event_hub._loop is asyncio.get_running_loop()
            manager.stop_services()

        asyncio.run(run())
        writer = connection_controller.recorder.writer
        assert isinstance(writer, DirectoryFileWriter)
        assert writer.log_dir == tmp_path
        assert event_hub._loop is None

    def test_emulation_serves_frames(self, manager):
        async def run():
            await manager.start_services(emulation=True)
            host, port = manager.emulator.address
            with socket.create_connection((host, port), timeout=2.0) as sock:
                assert sock.recv(20)
            manager.stop_services()

        asyncio.run(run())
        assert manager.emulator is None

    def test_no_emulator_by_default(self, manager):
        async def run():
            await manager.start_services()
            assert manager.emulator is None
            manager.stop_services()

        asyncio.run(run())


def test_app_lifespan(global_controller):
    """Starting and stopping the app binds and releases the event hub loop"""
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert event_hub._loop is not None
    assert event_hub._loop is None


class TestSettings:
    """Environment overrides of the app settings"""

    def test_log_dir_from_pressure_log_dir(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PRESSURE_LOG_DIR", str(tmp_path))
        assert Settings().log_dir == tmp_path

    def test_generic_log_dir_variable_ignored(self, monkeypatch, tmp_path):
        monkeypatch.delenv("PRESSURE_LOG_DIR", raising=False)
        monkeypatch.setenv("LOG_DIR", str(tmp_path))
        assert Settings().log_dir is None
