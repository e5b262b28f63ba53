# core/exceptions.py


class OrganizerError(Exception):
    """Base class for all organizer errors"""


class EngineNotInitializedError(OrganizerError, RuntimeError):
    """Raised when analysis is requested before the engine was initialized"""

    def __init__(self, message: str = "Analysis engine not initialized. Call initialize() first."):
        super().__init__(message)


class ProviderLoadError(OrganizerError):
    """A capability provider could not load its backend"""


class ProviderRunError(OrganizerError):
    """A loaded capability provider failed on a specific image"""


class ProviderUnavailableError(OrganizerError):
    """A capability provider was called while not loaded"""


class ImageDecodeError(OrganizerError, ValueError):
    """Source bytes could not be decoded as an image"""


class BatchStateError(OrganizerError, RuntimeError):
    """Batch run requested from a state that does not allow it"""
