"""
Exception hierarchy for crop sessions and uploads.

    CropError
    ├── DecodeError            source bytes are not a readable image
    ├── CropNotReadyError      no source loaded or no crop region yet
    ├── RenderError            rasterization or encoding failed
    └── SessionCancelledError  render finished after the session was cancelled
    UploadError                upload rejected locally or by the server

Decode and render failures end the session; the caller restarts with
``CropSession.begin_session``.  Nothing is retried internally.
"""


class CropError(Exception):
    """Base class for crop-session failures."""


class DecodeError(CropError):
    """The source buffer is not a supported image."""


class CropNotReadyError(CropError):
    """A crop was requested before the viewport produced a region."""


class RenderError(CropError):
    """The cropped region could not be rendered or encoded."""


class SessionCancelledError(CropError):
    """A pending render belongs to a session that has been cancelled."""


class UploadError(Exception):
    """An upload was rejected before sending or failed on the server."""

    def __init__(self, message: str, status_code: int = None, response: dict = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)
