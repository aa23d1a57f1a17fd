"""
Exception types raised by the filling engine and its HTTP surface.
"""


class DocFillError(Exception):
    """Base class for errors the routes turn into JSON responses."""

    status_code = 500

    def to_dict(self) -> dict:
        return {"error": str(self)}


class InvalidPayloadError(DocFillError, ValueError):
    """Field JSON is malformed or not an object. Raised before any field is touched."""

    status_code = 400


class TemplateError(DocFillError):
    """Template missing, unreadable, or of the wrong kind (e.g. a PDF without a form)."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class UpstreamError(DocFillError):
    """
    Failure talking to the generative extraction service.
    retryable tells the caller whether trying again later can help (429, 503, timeouts).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = False,
        details=None,
    ):
        super().__init__(message)
        self.status_code = status_code or 502
        self.retryable = retryable
        self.details = details

    def to_dict(self) -> dict:
        out = {"error": str(self)}
        if self.details is not None:
            out["details"] = self.details
        if self.retryable:
            out["retryable"] = True
        return out


class CourtDataError(DocFillError):
    """Court tables could not be read (missing file, bad CSV)."""

    status_code = 500
