"""
Import Error Handler

Error taxonomy for the Odoo import pipelines and a collector that keeps
every per-record failure while exposing bounded samples for logs and
HTTP responses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""
    NON_FATAL = "non_fatal"
    FATAL = "fatal"


class ErrorCategory(Enum):
    """Error categories for classification."""
    AUTHENTICATION = "authentication"
    FETCH = "fetch"
    CATEGORY = "category"
    RECORD = "record"
    IMAGE = "image"


class OdooImportError(Exception):
    """Base class for import pipeline errors."""
    severity = ErrorSeverity.NON_FATAL
    category = ErrorCategory.RECORD

    @property
    def is_fatal(self) -> bool:
        return self.severity is ErrorSeverity.FATAL


class AuthenticationError(OdooImportError):
    """The ERP rejected the credentials or the login call failed. Aborts the run."""
    severity = ErrorSeverity.FATAL
    category = ErrorCategory.AUTHENTICATION


class FetchError(OdooImportError):
    """A search_read call against the ERP failed. Aborts the run."""
    severity = ErrorSeverity.FATAL
    category = ErrorCategory.FETCH


class CategoryReconcileError(OdooImportError):
    """A single category could not be mapped; the category is skipped."""
    category = ErrorCategory.CATEGORY


class RecordUpsertError(OdooImportError):
    """A single record could not be written; counted and sampled."""
    category = ErrorCategory.RECORD


class ImageUploadError(OdooImportError):
    """An image could not be stored; the record is written without it."""
    category = ErrorCategory.IMAGE


@dataclass
class ErrorSample:
    """Bounded detail about one failed record."""
    name: str
    external_id: Optional[int]
    error: str
    sku: Optional[str] = None
    email: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self, name_key: str = 'product') -> Dict[str, Any]:
        data = {
            name_key: self.name,
            'external_id': self.external_id,
            'error': self.error,
        }
        if self.sku is not None:
            data['sku'] = self.sku
        if self.email is not None:
            data['email'] = self.email
        return data


class ErrorCollector:
    """Keeps every failure of a run; callers read bounded samples."""

    def __init__(self, name_key: str = 'product'):
        self.name_key = name_key
        self._errors: List[ErrorSample] = []

    def add(self, sample: ErrorSample) -> None:
        self._errors.append(sample)

    def __len__(self) -> int:
        return len(self._errors)

    def sample(self, limit: int) -> List[Dict[str, Any]]:
        """First `limit` errors as dictionaries."""
        return [error.to_dict(self.name_key) for error in self._errors[:limit]]
