"""
Error types for the TV Guide service

Every failure the guide core can report derives from GuideServiceError so the
HTTP layer can map them to responses in one place.
"""


class GuideServiceError(Exception):
    """Base class for guide service errors"""
    code = "GUIDE_ERROR"


class InvalidArgumentError(GuideServiceError, ValueError):
    """Raised when caller-supplied grid parameters are invalid"""
    code = "INVALID_ARGUMENT"


class NotReadyError(GuideServiceError):
    """Raised when no listings snapshot has been loaded yet"""
    code = "NOT_READY"


class SourceUnavailableError(GuideServiceError):
    """Raised when the listings source cannot be read or parsed"""
    code = "SOURCE_UNAVAILABLE"


class InvalidFormatError(GuideServiceError, ValueError):
    """Raised when a timestamp does not match the expected format"""
    code = "INVALID_FORMAT"
