"""Change records appended by every mutating manager call, drained by persistence."""

from dataclasses import dataclass
from typing import List, Optional

from app.placement.entities import Actor

ENTITY_STUDENT = "student"
ENTITY_SPONSOR = "sponsor"
ENTITY_OPPORTUNITY = "opportunity"
ENTITY_APPLICATION = "application"


@dataclass(frozen=True)
class Change:
    entity_type: str
    entity_id: str
    action: str
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    actor: Optional[Actor] = None
    removed: bool = False


def application_entity_id(student_id: str, opportunity_id: str) -> str:
    return f"{opportunity_id}:{student_id}"


def split_application_entity_id(entity_id: str):
    opportunity_id, student_id = entity_id.split(":", 1)
    return student_id, opportunity_id


class ChangeLog:
    def __init__(self) -> None:
        self._pending: List[Change] = []

    def record(self, change: Change) -> None:
        self._pending.append(change)

    def drain(self) -> List[Change]:
        """Return and forget everything recorded since the last drain."""
        drained, self._pending = self._pending, []
        return drained

    def __len__(self) -> int:
        return len(self._pending)
