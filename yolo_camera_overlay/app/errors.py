"""Startup failures that halt the overlay before capture begins."""
from __future__ import annotations


class StartupError(RuntimeError):
    """Raised when a startup precondition does not hold."""


class DeviceUnavailableError(StartupError):
    """The requested inference device does not exist on this machine."""


class AccelerationUnsupportedError(StartupError):
    """Acceleration is required but only the CPU is available."""


class CameraSetupError(StartupError):
    """The video source could not be opened."""
