"""Failure types raised by the speck analysis stages.

Every failure carries the name of the stage that raised it so the CLI can
tell the operator where the run stopped.
"""


class SpeckQCError(RuntimeError):
    """Base class for pipeline failures."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage
        self.message = message

    def __str__(self):
        return f"[{self.stage}] {self.message}"


class PreconditionError(SpeckQCError):
    """Input does not satisfy what a stage needs (empty volume, bad metadata, window out of range)."""


class LandmarkSearchError(SpeckQCError):
    """The adaptive maxima search did not settle on exactly six specks."""
