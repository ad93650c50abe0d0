"""Exception types raised across fretscope.

Analysis components never raise on empty or silent input; these are
reserved for user-facing controls and for the audio front-end.
"""

from __future__ import annotations


class FretscopeError(Exception):
    """Base class for all fretscope errors."""


class ReferencePitchError(FretscopeError, ValueError):
    """Raised when a reference pitch (A4) is non-numeric or out of range."""


class TuningError(FretscopeError, ValueError):
    """Raised for an unknown tuner mode or string name."""


class UnknownConfigKeyError(FretscopeError, ValueError):
    """Raised when a configuration key is not present in the schema."""


class FrontEndError(FretscopeError, RuntimeError):
    """Raised when audio cannot be loaded or transformed."""
