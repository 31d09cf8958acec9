"""Error taxonomy shared by the camera, compositor, session and storage layers."""


class PhotoboothError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


# Acquisition

class AcquisitionError(PhotoboothError):
    status_code = 503
    default_message = "Failed to access camera."


class PermissionDenied(AcquisitionError):
    status_code = 403
    default_message = "Camera access denied. Please allow camera permissions and try again."


class DeviceUnavailable(AcquisitionError):
    default_message = "Camera is not available."


class NoDevice(DeviceUnavailable):
    default_message = "No camera found. Please connect a camera and try again."


class CameraBusy(DeviceUnavailable):
    default_message = "Camera is being used by another application."


class NotSupported(AcquisitionError):
    status_code = 501
    default_message = "Camera not supported on this system."


class AcquisitionTimeout(AcquisitionError):
    status_code = 504
    default_message = "Camera took too long to load. Please try again."


# Compositing

class CompositorError(PhotoboothError):
    status_code = 409


class NotReady(CompositorError):
    default_message = "Camera not ready"


class DecodeFailed(CompositorError):
    status_code = 422
    default_message = "Failed to decode captured photo"


# Persistence

class PersistenceError(PhotoboothError):
    status_code = 502


class TransferFailed(PersistenceError):
    default_message = "Upload failed"


class Unauthenticated(PersistenceError):
    status_code = 401
    default_message = "Not authenticated"


class NotFoundOrUnauthorized(PersistenceError):
    status_code = 404
    default_message = "Photo not found or unauthorized"


# Session flow

class SessionError(PhotoboothError):
    status_code = 409


class InvalidTransition(SessionError):
    default_message = "That action is not available right now"


class InvalidSelection(SessionError):
    status_code = 422
    default_message = "Unknown selection"


class Busy(SessionError):
    default_message = "A capture or save is already in progress"
