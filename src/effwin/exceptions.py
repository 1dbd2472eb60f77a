"""
Exceptions raised by effwin.

Nothing here is raised out of per-packet processing; the engine degrades
to fewer computed fields instead.
"""


class EffWinError(Exception):
    """Base class for effwin errors."""


class ReadOnlyFieldError(EffWinError):
    """A packet record field cannot be written in the current context."""


class CaptureReadError(EffWinError):
    """Capture file could not be opened or parsed."""
