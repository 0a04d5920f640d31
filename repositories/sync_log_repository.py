"""
Sync Log Repository for the append-only run logs, admin audit entries and import checkpoints.
"""

from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from datetime import datetime

from models import SyncLog, AdminLog, ImportCheckpoint
from .base import BaseRepository

class SyncLogRepository(BaseRepository):
    """Repository for SyncLog model operations."""

    def __init__(self, session: Session):
        super().__init__(SyncLog, session)

    def log_run(self, sync_type: str, status: str, records_synced: int = 0, records_failed: int = 0,
                error_message: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None,
                started_at: Optional[datetime] = None) -> SyncLog:
        """Append the log row of one import run."""
        return self.create(
            sync_type=sync_type,
            status=status,
            records_synced=records_synced,
            records_failed=records_failed,
            error_message=error_message,
            meta_data=metadata or {},
            started_at=started_at or datetime.utcnow(),
            completed_at=datetime.utcnow()
        )

    def get_recent(self, sync_type: str, limit: int = 10) -> List[SyncLog]:
        """Get the most recent runs of a given type."""
        return self.session.query(SyncLog).filter(
            SyncLog.sync_type == sync_type
        ).order_by(SyncLog.started_at.desc(), SyncLog.id.desc()).limit(limit).all()


class AdminLogRepository(BaseRepository):
    """Repository for AdminLog model operations."""

    def __init__(self, session: Session):
        super().__init__(AdminLog, session)

    def log_action(self, admin_id: Optional[str], action: str, entity_type: str,
                   details: Dict[str, Any]) -> AdminLog:
        """Append an audit entry for an admin action."""
        return self.create(
            admin_id=admin_id,
            action=action,
            entity_type=entity_type,
            details=details
        )


class CheckpointRepository(BaseRepository):
    """Repository for ImportCheckpoint model operations."""

    def __init__(self, session: Session):
        super().__init__(ImportCheckpoint, session)

    def get_last_external_id(self, sync_type: str) -> Optional[int]:
        """Get the last committed external id of an unfinished run, if any."""
        checkpoint = self.get_by(sync_type=sync_type)
        return checkpoint.last_external_id if checkpoint else None

    def advance(self, sync_type: str, external_id: int) -> ImportCheckpoint:
        """Move the cursor forward to the given external id."""
        checkpoint, created = self.get_or_create(
            defaults={'last_external_id': external_id, 'records_done': 1},
            sync_type=sync_type
        )
        if not created:
            checkpoint.last_external_id = external_id
            checkpoint.records_done = (checkpoint.records_done or 0) + 1
            self.session.flush()
        return checkpoint

    def clear(self, sync_type: str) -> bool:
        """Drop the cursor once a run completes."""
        checkpoint = self.get_by(sync_type=sync_type)
        if not checkpoint:
            return False
        self.session.delete(checkpoint)
        self.session.flush()
        return True
