# app/domain/errors.py
from typing import Optional


class DesignError(Exception):
    """Base class for failures reported to the caller of the design pipeline."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(DesignError):
    """Malformed request: bad image prefix, unparsable template, bad transform."""

    status_code = 400


class TemplateParseError(InvalidInput):
    pass


class NotFound(DesignError):
    """Unknown product identifier or unreachable template."""

    status_code = 404


class ProcessingFailure(DesignError):
    """Raster or storage stage failed. `stage` names which one."""

    status_code = 500

    def __init__(self, stage: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{stage} failed: {message}")
        self.stage = stage
        self.cause = cause
