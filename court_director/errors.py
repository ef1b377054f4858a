"""Exception types raised by the camera director."""
from __future__ import annotations


class CourtDirectorError(Exception):
    """Base class for every error raised by :mod:`court_director`."""


class ConfigurationError(CourtDirectorError, ValueError):
    """Invalid tuning parameters; raised at construction, never per frame."""


class ReplayFormatError(CourtDirectorError):
    """A detection replay file could not be parsed."""
