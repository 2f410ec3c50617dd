class CounselError(Exception):
    """Base class for errors raised by the chat and search core."""


class ValidationError(CounselError, ValueError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class AdmissionError(CounselError):
    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__(f"Rate limit exceeded, retry after {retry_after_seconds}s")
        self.retry_after_seconds = retry_after_seconds


class ToolArgumentError(CounselError, ValueError):
    pass


class ProviderStreamError(CounselError):
    pass


class CorpusError(CounselError, ValueError):
    pass
