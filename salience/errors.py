"""Exception types raised by the salience pipeline."""


class SalienceError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(SalienceError, ValueError):
    """A configuration value or profile file is invalid."""


class BufferShapeError(SalienceError, ValueError):
    """An analysis buffer does not match the current grid."""
