class FlagleError(Exception):
    """Base class for errors raised by the game core."""


class LoadError(FlagleError):
    """An asset (pool, palette or flag image) is missing, corrupt or undecodable."""

    def __init__(self, identifier: str, reason: str):
        super().__init__(f"Failed to load '{identifier}': {reason}")
        self.identifier = identifier
        self.reason = reason


class ShapeMismatchError(FlagleError):
    """Guess and target buffers do not share the same dimensions.

    This points at a bug in the asset pipeline (an image baked at the wrong size),
    not at anything the player did.
    """


class SessionInitError(FlagleError):
    """The daily session could not be set up (pool or target unavailable)."""


class StoreError(FlagleError):
    """The snapshot store could not be read; unlike a missing row this is not "no session"."""
