import json
import logging
from dataclasses import fields
from pathlib import Path

from pressure_monitor.core.models.config_data import configData

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent.parent


class ConfigLoader:
    """Loads and manages acquisition configuration from JSON file."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigLoader, cls).__new__(cls)
            cls._instance._config = configData()
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self.load_config()
            self._initialized = True

    @staticmethod
    def get_config_path() -> Path:
        """Get the path to the monitor_config.json file."""
        return PROJECT_ROOT / "config" / "monitor_config.json"

    def load_config(self, config_path: Path | None = None):
        """Load configuration from JSON file, falling back to defaults."""
        config_path = config_path or self.get_config_path()

        self._config = configData()

        if not config_path.exists():
            logger.error(f"Configuration file not found: {config_path}")
            return

        known = {f.name for f in fields(configData)}
        try:
            with open(config_path, 'r') as f:
                json_data = json.load(f)
            for key, value in json_data.items():
                if key not in known:
                    logger.warning(f"Unknown configuration key ignored: {key}")
                    continue
                setattr(self._config, key, value)
            logger.info(f"Configuration loaded from {config_path}")

        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse configuration file: {e}")
            self._config = configData()

        except (OSError, AttributeError) as e:
            logger.error(f"Unexpected error loading configuration: {e}")
            self._config = configData()

    def get_config(self) -> configData:
        return self._config

    def get_emulation_mode(self) -> bool:
        """Get the emulation mode setting."""
        return self._config.emulation

    def get_device_port(self) -> int:
        return self._config.device_port

    def get_buffer_capacity(self) -> int:
        return self._config.buffer_capacity

    def get_log_dir(self) -> Path:
        """Log directory; relative paths are resolved against the project root."""
        log_dir = Path(self._config.log_dir)
        if not log_dir.is_absolute():
            log_dir = PROJECT_ROOT / log_dir
        return log_dir


# Global singleton instance
config_loader = ConfigLoader()
