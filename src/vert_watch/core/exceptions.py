"""Custom exceptions for Vert Watch."""


class VertWatchError(Exception):
    """Base exception for all Vert Watch errors."""

    pass


class SensorUnavailableError(VertWatchError):
    """The motion source cannot be started."""

    def __init__(self, message: str = "Motion sensor is not available") -> None:
        self.message = message
        super().__init__(self.message)


class SensorReadError(VertWatchError):
    """A single sensor tick could not be decoded."""

    def __init__(self, message: str = "Sensor reading could not be decoded") -> None:
        self.message = message
        super().__init__(self.message)


class JumpDetectionError(VertWatchError):
    """Jump detector was driven outside its contract."""

    def __init__(self, message: str = "Jump detection error") -> None:
        self.message = message
        super().__init__(self.message)


class ConfigurationError(VertWatchError):
    """Settings are valid individually but unusable together."""

    def __init__(self, message: str = "Invalid configuration") -> None:
        self.message = message
        super().__init__(self.message)
