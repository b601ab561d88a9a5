"""Exception definitions for RecentAudio."""


class RecentAudioError(Exception):
    """Base exception class for RecentAudio errors."""

    pass


class InvalidConfigError(RecentAudioError, ValueError):
    """Raised when an audio configuration or processing argument is invalid."""

    pass


class InferenceError(RecentAudioError):
    """Raised when the speech classifier fails to score a window."""

    pass
