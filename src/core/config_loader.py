import json
import logging
from pathlib import Path
from typing import Optional

from core.models.config_data import ServerConfig

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Loads and manages the telemetry server configuration from a JSON file."""
    
    _instance = None
    
    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigLoader, cls).__new__(cls)
            cls._instance._config = ServerConfig()
            cls._instance._config_path = None
            cls._instance._initialized = False
        return cls._instance
    
    def __init__(self):
        if not self._initialized:
            self.load_config()
            self._initialized = True
    
    @staticmethod
    def get_config_path() -> Path:
        """Get the path to the server_config.json file."""
        # Config file lives in the project root/config directory
        return Path(__file__).parent.parent.parent / "config" / "server_config.json"
    
    def load_config(self, config_path: Optional[Path] = None):
        """Load configuration from JSON file, keeping defaults for anything missing or invalid."""
        if config_path is not None:
            self._config_path = config_path
        path = self._config_path or self.get_config_path()
        
        # Start from defaults so _config is always complete
        self._config = ServerConfig()
        
        if not path.exists():
            logger.error(f"Configuration file not found: {path}")
            return
        
        try:
            with open(path, 'r', encoding='utf-8') as f:
                json_data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse configuration file: {e}")
            return
        except OSError as e:
            logger.error(f"Unexpected error loading configuration: {e}")
            return
        
        if not isinstance(json_data, dict):
            logger.error(f"Configuration root must be an object, got {type(json_data).__name__}")
            return
        
        host = json_data.get("host", self._config.host)
        if isinstance(host, str) and host:
            self._config.host = host
        else:
            logger.warning(f"Invalid host {host!r} in configuration, using {self._config.host}")
        
        port = json_data.get("port", self._config.port)
        if isinstance(port, int) and not isinstance(port, bool) and 0 <= port <= 65535:
            self._config.port = port
        else:
            logger.warning(f"Invalid port {port!r} in configuration, using {self._config.port}")
        
        read_limit = json_data.get("read_limit", self._config.read_limit)
        if isinstance(read_limit, int) and not isinstance(read_limit, bool) and read_limit > 0:
            self._config.read_limit = read_limit
        else:
            logger.warning(f"Invalid read_limit {read_limit!r} in configuration, using {self._config.read_limit}")
        
        log_samples = json_data.get("log_samples", self._config.log_samples)
        if isinstance(log_samples, bool):
            self._config.log_samples = log_samples
        else:
            logger.warning(f"Invalid log_samples {log_samples!r} in configuration, using {self._config.log_samples}")
        
        logger.info(f"Configuration loaded from {path}")
    
    def get_config(self) -> ServerConfig:
        return self._config
    
    def get_host(self) -> str:
        """Get the address the telemetry listener binds to."""
        return self._config.host
    
    def get_port(self) -> int:
        """Get the telemetry listening port."""
        return self._config.port
    
    def get_read_limit(self) -> int:
        return self._config.read_limit
    
    def get_log_samples(self) -> bool:
        """Whether decoded samples are written to the log."""
        return self._config.log_samples
    
    def reload_config(self):
        """Reload configuration from file."""
        self.load_config()
        logger.info("Configuration reloaded")


# Global singleton instance
config_loader = ConfigLoader()
