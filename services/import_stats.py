"""
Import statistics

Each record handled by an import service produces a RecordOutcome; the
run's ImportStats folds those outcomes into counters. Nothing else
mutates the counters.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from services.error_handler import ErrorCollector, ErrorSample


class RecordAction(Enum):
    """What happened to a single fetched record."""
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class RecordOutcome:
    """Result of processing one record."""
    action: RecordAction
    image_processed: bool = False
    image_failed: bool = False
    error: Optional[ErrorSample] = None

    @classmethod
    def skipped(cls) -> 'RecordOutcome':
        return cls(RecordAction.SKIPPED)

    @classmethod
    def failed(cls, error: ErrorSample) -> 'RecordOutcome':
        return cls(RecordAction.FAILED, error=error)


@dataclass
class ImportStats:
    """Counters of one import run."""
    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    images_processed: int = 0
    images_failed: int = 0
    error_log: ErrorCollector = field(default_factory=ErrorCollector)

    def record(self, outcome: RecordOutcome) -> None:
        if outcome.action is RecordAction.CREATED:
            self.created += 1
        elif outcome.action is RecordAction.UPDATED:
            self.updated += 1
        elif outcome.action is RecordAction.SKIPPED:
            self.skipped += 1
        else:
            self.errors += 1
            if outcome.error is not None:
                self.error_log.add(outcome.error)

        if outcome.image_processed:
            self.images_processed += 1
        if outcome.image_failed:
            self.images_failed += 1

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.errors

    @property
    def seen(self) -> int:
        return self.processed + self.skipped

    @property
    def synced(self) -> int:
        return self.created + self.updated

    def progress(self) -> Dict[str, Any]:
        return {
            'processed': self.seen,
            'total': self.total,
            'created': self.created,
            'updated': self.updated,
            'errors': self.errors,
            'skipped': self.skipped,
        }


def format_ms(milliseconds: float) -> str:
    return f"{int(round(milliseconds))}ms"
