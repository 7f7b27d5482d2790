class BPError(Exception):
    """Base class for errors surfaced to the dashboard user."""


class ValidationError(BPError):
    """Bad user input or file shape; raised before any state mutation."""


class ImportFormatError(ValidationError):
    pass


class ThresholdLockedError(ValidationError):
    pass


class FhirError(BPError):
    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
