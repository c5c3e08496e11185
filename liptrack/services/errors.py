"""
Exceptions raised by the lip-track services.
"""


class LipTrackError(Exception):
    """Base class for lip-track processing failures."""


class MissingFrameError(LipTrackError):
    """A processing step arrived without its mandatory video frame."""

    def __init__(self, timestamp: int):
        self.timestamp = timestamp
        super().__init__(f"No VIDEO input at time {timestamp / 1_000_000:.6f}s")


class FrameDecodeError(LipTrackError):
    """An encoded frame payload could not be decoded into an image."""


class SessionNotFoundError(LipTrackError):
    """No streaming session exists with the requested id."""


class SessionLimitError(LipTrackError):
    """Too many streaming sessions are open."""
