"""
Exception types raised by the multi-layer QG core.

Construction-time failures are raised before any partially built object
is returned. The tendency evaluation itself performs no validation.
"""


class QGError(Exception):
    """Base class for all errors raised by mlqg."""


class ShapeMismatchError(QGError, ValueError):
    """Array dimensions or layer counts are inconsistent among inputs."""


class ConfigurationError(QGError, ValueError):
    """A physical or numerical parameter is outside its admissible range."""


class NumericalError(QGError, ArithmeticError):
    """A linear operator is singular or a result is not finite."""
