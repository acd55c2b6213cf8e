"""
Audit logging for placement state changes. Call on every change.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import PlacementAuditLog
from app.placement.changes import Change


async def log_audit(db: AsyncSession, change: Change, remarks: Optional[str] = None) -> None:
    """Append one audit log entry. Caller must commit."""
    entry = PlacementAuditLog(
        entity_type=change.entity_type,
        entity_id=change.entity_id,
        from_status=change.from_status,
        to_status=change.to_status,
        action=change.action,
        performed_by=change.actor.user_id if change.actor else None,
        performed_by_role=change.actor.role.value if change.actor else None,
        remarks=remarks,
        timestamp=datetime.utcnow(),
    )
    db.add(entry)


async def list_audit(db: AsyncSession, entity_type: str, entity_id: str) -> List[PlacementAuditLog]:
    result = await db.execute(
        select(PlacementAuditLog)
        .where(
            PlacementAuditLog.entity_type == entity_type,
            PlacementAuditLog.entity_id == entity_id,
        )
        .order_by(PlacementAuditLog.timestamp)
    )
    return list(result.scalars().all())
