class NeteyeError(Exception):
    """Base class for errors that abort a scan."""


class ConfigurationError(NeteyeError, ValueError):
    """Invalid scan configuration (port range, timeout, concurrency)."""


class ResolutionError(NeteyeError, ValueError):
    """The target host could not be resolved to an address."""


class SinkError(NeteyeError, OSError):
    """The output destination could not be opened."""
