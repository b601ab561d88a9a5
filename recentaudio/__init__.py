"""RecentAudio: keep the most recent audio in memory and save only its speech."""

__version__ = "0.1.0"
