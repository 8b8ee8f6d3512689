"""Exceptions raised by the form engine.

Field-level validation failures are never raised; they are collected into
the session's error map.  Only template-load problems and failed saves
surface as exceptions.
"""


class FormEngineError(Exception):
    """Base class for all form engine errors."""


class TemplateError(FormEngineError, ValueError):
    """A template cannot be loaded (duplicate keys, unknown rule tags, cycles).

    Subclasses ``ValueError`` so HTTP layers map it to a 400 response.
    """


class SaveError(FormEngineError):
    """The host save callback failed.

    The session keeps its dirty state; the next edit or explicit save retries.
    """

    def __init__(self, message: str, *, silent: bool = False) -> None:
        super().__init__(message)
        self.silent = silent
