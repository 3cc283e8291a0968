import os
from dataclasses import dataclass
from pathlib import Path

from caffeine.errors import ConfigError

DEFAULT_PORT = 8888
DEFAULT_HOST = "localhost"
PORT_ENV = "CAFFEINE_PORT"


@dataclass(frozen=True)
class ServerConfig:
    """Settings of one dev server run. Built once from CLI input."""

    root: Path
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    # seconds between keep-alive comments on idle reload streams
    heartbeat: float = 15.0

    def __post_init__(self):
        object.__setattr__(self, "root", Path(self.root).resolve())

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @classmethod
    def from_path(cls, path, port=None, host=None) -> "ServerConfig":
        root = Path(path).resolve()
        if not root.exists():
            raise ConfigError(f"Frontend path not found: {root}")
        if not root.is_dir():
            raise ConfigError(f"Frontend path is not a directory: {root}")

        if port is None:
            port = os.environ.get(PORT_ENV, DEFAULT_PORT)
        try:
            port = int(port)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid port: {port!r}") from None
        if not 0 <= port <= 65535:
            raise ConfigError(f"Port out of range: {port}")

        return cls(root=root, port=port, host=host or DEFAULT_HOST)
