"""Exception hierarchy for the live companion session.

None of these are fatal to the hosting process. Each one maps to a degraded
mode of the session rather than a crash.
"""


class LiveCompanionError(Exception):
    """Base class for live companion errors."""


class InitializationError(LiveCompanionError):
    """The platform audio subsystem could not build an analysis graph."""


class GenerationError(LiveCompanionError):
    """The reply-generation collaborator failed to produce a reply."""


class ValidationError(LiveCompanionError):
    """A message was rejected before reaching the reply generator."""
