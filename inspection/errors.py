from __future__ import annotations

from typing import List, Optional, Sequence


class InspectionError(Exception):
    """Base class for every error the inspection assistant raises."""


class ValidationError(InspectionError):
    """A user action was rejected; the store is left unchanged."""


class FormatError(InspectionError):
    """A backup document does not have the shape of a store."""

    def __init__(self, message: str, missing_fields: Optional[Sequence[str]] = None):
        self.missing_fields: List[str] = list(missing_fields or [])
        if self.missing_fields:
            message = f"{message}: missing {', '.join(self.missing_fields)}"
        super().__init__(message)


class StorageDecodeError(InspectionError):
    """The persisted store could not be decoded."""


class RenderSkip(InspectionError):
    """An image could not be decoded and is left out of a document."""


class NotFoundError(InspectionError):
    pass
