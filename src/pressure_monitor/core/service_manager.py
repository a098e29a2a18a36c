# External libs
import asyncio
import logging
from pathlib import Path
from typing import Optional

# Internal libs
from pressure_monitor.core.config_loader import config_loader
from pressure_monitor.core.event_hub import init_event_hub
from pressure_monitor.core.services.connection_controller import connection_controller
from pressure_monitor.core.services.device_emulator import DeviceEmulator
from pressure_monitor.core.services.recorder import DirectoryFileWriter, Recorder

logger = logging.getLogger(__name__)


class ServiceManager:

    def __init__(self):
        self.emulator: Optional[DeviceEmulator] = None

    async def start_services(self, emulation: bool = False, log_dir: Optional[Path] = None):
        """Start global background services.
        Args:
            emulation: When True, serve a local DeviceEmulator on the configured device port.
            log_dir: Overrides the configured session log directory.
        """
        logger.info("Starting background services...")
        loop = asyncio.get_running_loop()

        # Observers are notified on the server loop
        init_event_hub(loop)

        if log_dir is not None:
            connection_controller.recorder = Recorder(DirectoryFileWriter(log_dir))
            logger.info(f"Session logs are written to {log_dir}")

        if emulation and self.emulator is None:
            config = config_loader.get_config()
            self.emulator = DeviceEmulator(
                host=config.emulation_host,
                port=config.device_port,
                interval=config.emulation_interval,
            )
            self.emulator.start()

    def stop_services(self):
        """Disconnect the device and stop background services."""
        connection_controller.shutdown()
        if self.emulator is not None:
            self.emulator.stop()
            self.emulator = None
        init_event_hub(None)
        logger.info("Background services stopped")


service_manager = ServiceManager()
