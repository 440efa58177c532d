from __future__ import annotations

from typing import Optional


class VideoJobError(RuntimeError):
    pass


class ParamValidationError(VideoJobError):
    """Caller input that can never be submitted. Not retried."""

    EMPTY_PROMPT = "EMPTY_PROMPT"
    INVALID_DURATION = "INVALID_DURATION"
    UNSUPPORTED_RATIO = "UNSUPPORTED_RATIO"

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class ProviderError(VideoJobError):
    """Provider rejected a request, returned garbage, or could not be reached."""

    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"

    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        body: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.http_status = http_status
        self.body = body
        self.code = code
        # set when a submit failure was recorded as a FAILED job
        self.job_id: Optional[str] = None

    @property
    def is_transport(self) -> bool:
        return self.http_status is None and self.code is None


class ProviderTimeout(ProviderError):
    def __init__(self, message: str = "provider call timed out") -> None:
        super().__init__(message)


class JobNotFound(VideoJobError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"job_not_found: {job_id}")
        self.job_id = job_id
