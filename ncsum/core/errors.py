"""Error kinds raised by the ncsum core.

Every per-file failure surfaces as one of these types.  A digest mismatch is
deliberately absent: it is a check classification, not an error.
"""

from __future__ import annotations


class NcsumError(RuntimeError):
    """Base class for all per-file failures."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class IoError(NcsumError):
    """A file could not be read or written."""


class ParseError(NcsumError):
    """Descriptor text is malformed or disagrees with its file name."""


class ArchiveFormatError(NcsumError):
    """A ``.pncsum`` container is malformed or internally inconsistent."""


class NotFoundError(NcsumError):
    """A payload referenced by a descriptor does not exist."""


class NameCollisionError(NcsumError):
    """A target path already holds different content."""


class UnsupportedInputError(NcsumError):
    """The input is not the kind of file the operation accepts."""


class InvalidTransitionError(NcsumError):
    """A check tried to move between states the state machine forbids."""


def as_ncsum_error(exc: BaseException) -> NcsumError | None:
    """Map *exc* onto an error kind, or ``None`` if it is not a per-file failure."""
    if isinstance(exc, NcsumError):
        return exc
    if isinstance(exc, OSError):
        target = exc.filename if exc.filename is not None else ""
        reason = exc.strerror or str(exc)
        wrapped = IoError(f"{target}: {reason}" if target else reason)
        wrapped.__cause__ = exc
        return wrapped
    return None
