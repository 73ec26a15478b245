from __future__ import annotations


class Ai2WordError(Exception):
    """Base class for errors raised by the converter."""


class ConfigError(Ai2WordError, ValueError):
    """Configuration file is malformed or holds unknown settings."""


class GenerationError(Ai2WordError, RuntimeError):
    """A document could not be produced; partial output must not be used."""
