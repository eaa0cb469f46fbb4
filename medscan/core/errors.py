"""Error taxonomy for capture and analysis failures"""


class MedScanError(Exception):
    """Base class for failures that end up as a user-facing message"""

    default_message = "Something went wrong."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class CameraUnavailable(MedScanError):
    """Camera could not be opened (permission denied or no device)"""

    default_message = "Camera access denied. Please enable camera permissions and try again."


class CaptureUnavailable(MedScanError):
    """No frame could be grabbed from the stream"""

    default_message = "The camera is not ready yet. Please try again."


class SchemaViolation(MedScanError):
    """Backend response did not match the declared output shape"""

    default_message = "Identification failed. Ensure the label text is clearly visible."


class NotAMedicine(MedScanError):
    default_message = "The captured image does not appear to be a medicine packaging or tablet."


class NotFound(MedScanError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f'Could not find reliable information for "{name}". '
            "Please check the spelling or try another name."
        )


class BackendError(MedScanError):
    """Transport or server-side failure talking to the generative backend"""

    default_message = "The analysis service is unavailable right now. Please try again later."
