class CaffeineError(Exception):
    """Base class for errors reported to the user by the CLI."""


class ConfigError(CaffeineError):
    pass


class ClientPathError(CaffeineError):
    """Request path resolves outside the served root."""

    def __init__(self, url_path):
        super().__init__(f"path escapes root: {url_path}")
        self.url_path = url_path


class NotFoundError(CaffeineError):
    def __init__(self, path):
        super().__init__(f"not found: {path}")
        self.path = path


class BindError(CaffeineError):
    def __init__(self, host, port, reason):
        super().__init__(f"cannot listen on {host}:{port}: {reason}")
        self.host = host
        self.port = port


class ScaffoldError(CaffeineError):
    pass


class BuildError(CaffeineError):
    def __init__(self, step, message):
        super().__init__(message)
        self.step = step


class JarNotFoundError(CaffeineError):
    def __init__(self, path):
        super().__init__(f"Caffeine JAR not found: {path}")
        self.path = path
