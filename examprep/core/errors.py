"""
Error taxonomy shared by the services and the HTTP layer.

Primary-path errors (upload, generation, export) are surfaced to the user.
ImageGenerationFailure never leaves the visual generation client.
"""


class ExamPrepError(Exception):
    """Base class for every recoverable application error."""

    status_code = 500

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class UploadError(ExamPrepError):
    """No usable file was selected."""

    status_code = 400


class GenerationError(ExamPrepError):
    """The text-generation call failed or returned unusable content."""

    status_code = 502


class GenerationTimeoutError(GenerationError):
    status_code = 504


class GenerationBusyError(ExamPrepError):
    """A generation is already in flight."""

    status_code = 409


class ImageGenerationFailure(ExamPrepError):
    """A single diagram could not be produced. Non-fatal."""


class ExportError(ExamPrepError):
    """The print pipeline failed."""

    status_code = 500


class InvalidTransitionError(ExamPrepError):
    """The requested UI action is not allowed in the current state."""

    status_code = 409
