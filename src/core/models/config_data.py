from dataclasses import dataclass

DEFAULT_PORT = 5050


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    # Longest accepted line in bytes; longer lines end the connection
    read_limit: int = 64 * 1024
    log_samples: bool = True
