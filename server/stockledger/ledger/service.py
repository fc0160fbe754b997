import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy.orm import Session, aliased, selectinload

from stockledger.config import settings
from stockledger.errors import LedgerValidationError, MovementNotFoundError
from stockledger.ledger import schemas
from stockledger.ledger.validation import ValidatedLine, validate_lines
from stockledger.models import InventoryMovementEvent, InventoryMovementLine, Item, Node, Unit

logger = logging.getLogger(__name__)

DRAFT = "DRAFT"
POSTED = "POSTED"
CANCELLED = "CANCELLED"

INITIAL_STATUSES = {DRAFT, POSTED}
ALLOWED_STATUS_TRANSITIONS = {
    DRAFT: {DRAFT, POSTED, CANCELLED},
    POSTED: set(),
    CANCELLED: set(),
}
EDITABLE_EVENT_FIELDS = ("event_type", "status", "occurred_at", "reference_type", "reference_id", "note")


class DraftLineOutcome(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    IMMUTABLE = "IMMUTABLE"
    UPDATED = "UPDATED"
    DELETED = "DELETED"


@dataclass
class DraftLineResult:
    outcome: DraftLineOutcome
    line: Optional[InventoryMovementLine] = None
    event: Optional[InventoryMovementEvent] = None
    event_deleted: bool = False


def normalize_timestamp(value: Optional[datetime]) -> Optional[datetime]:
    """Store timestamps as naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.MOVEMENT_LIST_DEFAULT_LIMIT
    return max(1, min(int(limit), settings.MOVEMENT_LIST_MAX_LIMIT))


def _apply_line(line: InventoryMovementLine, validated: ValidatedLine) -> None:
    line.item_id = validated.item_id
    line.unit_id = validated.unit_id
    line.from_node_id = validated.from_node_id
    line.to_node_id = validated.to_node_id
    line.quantity = validated.quantity


def create_event(
    db: Session,
    organization_id: int,
    *,
    lines: Sequence[Any],
    event_type: str = "MOVE",
    status: str = POSTED,
    occurred_at: Optional[datetime] = None,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    note: Optional[str] = None,
    created_by_user_id: Optional[int] = None,
) -> InventoryMovementEvent:
    if status not in INITIAL_STATUSES:
        raise LedgerValidationError(f"Movement cannot be created with status {status}.")

    validated = validate_lines(db, organization_id, lines)

    event = InventoryMovementEvent(
        organization_id=organization_id,
        event_type=event_type or "MOVE",
        status=status,
        occurred_at=normalize_timestamp(occurred_at) or datetime.utcnow(),
        reference_type=reference_type,
        reference_id=reference_id,
        note=note,
        created_by_user_id=created_by_user_id,
    )
    for line_no, entry in enumerate(validated, start=1):
        line = InventoryMovementLine(organization_id=organization_id, line_no=line_no)
        _apply_line(line, entry)
        event.lines.append(line)

    db.add(event)
    db.flush()
    logger.info(
        "Recorded %s movement event %s with %s lines for organization %s",
        event.status,
        event.id,
        len(event.lines),
        organization_id,
    )
    return event


def _get_line(db: Session, organization_id: int, line_id: int) -> Optional[InventoryMovementLine]:
    return (
        db.query(InventoryMovementLine)
        .options(selectinload(InventoryMovementLine.event).selectinload(InventoryMovementEvent.lines))
        .filter(InventoryMovementLine.organization_id == organization_id, InventoryMovementLine.id == line_id)
        .first()
    )


def update_draft_line(
    db: Session,
    organization_id: int,
    line_id: int,
    *,
    event_fields: Optional[Mapping[str, Any]] = None,
    line_fields: Mapping[str, Any],
) -> DraftLineResult:
    """Rewrite one line of a DRAFT event and apply a partial header update.

    ``event_fields`` only carries keys the caller set; a ``status`` key moves the
    event to POSTED or CANCELLED, after which it is frozen.
    """
    line = _get_line(db, organization_id, line_id)
    if not line:
        return DraftLineResult(DraftLineOutcome.NOT_FOUND)

    event = line.event
    if not event.is_mutable:
        logger.warning("Rejected update of line %s; event %s is %s", line_id, event.id, event.status)
        return DraftLineResult(DraftLineOutcome.IMMUTABLE, line=line, event=event)

    event_fields = dict(event_fields or {})
    next_status = event_fields.get("status")
    if next_status is not None and next_status not in ALLOWED_STATUS_TRANSITIONS[event.status]:
        raise LedgerValidationError(f"Transition {event.status} -> {next_status} is not allowed.")

    validated = validate_lines(db, organization_id, [line_fields])[0]

    for key in EDITABLE_EVENT_FIELDS:
        if key not in event_fields:
            continue
        value = event_fields[key]
        if key in ("event_type", "status", "occurred_at") and value is None:
            continue
        if key == "occurred_at":
            value = normalize_timestamp(value)
        setattr(event, key, value)
    event.updated_at = datetime.utcnow()
    _apply_line(line, validated)

    db.flush()
    logger.info("Updated line %s of movement event %s (status %s)", line.id, event.id, event.status)
    return DraftLineResult(DraftLineOutcome.UPDATED, line=line, event=event)


def delete_draft_line(db: Session, organization_id: int, line_id: int) -> DraftLineResult:
    line = _get_line(db, organization_id, line_id)
    if not line:
        return DraftLineResult(DraftLineOutcome.NOT_FOUND)

    event = line.event
    if not event.is_mutable:
        logger.warning("Rejected delete of line %s; event %s is %s", line_id, event.id, event.status)
        return DraftLineResult(DraftLineOutcome.IMMUTABLE, line=line, event=event)

    event.lines.remove(line)
    db.flush()

    event_deleted = not event.lines
    if event_deleted:
        db.delete(event)
        db.flush()
    logger.info(
        "Deleted line %s of movement event %s%s",
        line_id,
        event.id,
        " and the emptied event" if event_deleted else "",
    )
    return DraftLineResult(DraftLineOutcome.DELETED, event=None if event_deleted else event, event_deleted=event_deleted)


def get_event(db: Session, organization_id: int, event_id: int) -> InventoryMovementEvent:
    event = (
        db.query(InventoryMovementEvent)
        .options(selectinload(InventoryMovementEvent.lines))
        .filter(InventoryMovementEvent.organization_id == organization_id, InventoryMovementEvent.id == event_id)
        .first()
    )
    if not event:
        raise MovementNotFoundError()
    return event


def list_movements(db: Session, organization_id: int, limit: Optional[int] = None) -> list[schemas.MovementListRow]:
    from_node = aliased(Node, name="from_node")
    to_node = aliased(Node, name="to_node")
    rows = (
        db.query(InventoryMovementLine, InventoryMovementEvent, Item, Unit, from_node, to_node)
        .join(InventoryMovementEvent, InventoryMovementEvent.id == InventoryMovementLine.event_id)
        .outerjoin(Item, Item.id == InventoryMovementLine.item_id)
        .outerjoin(Unit, Unit.id == InventoryMovementLine.unit_id)
        .outerjoin(from_node, from_node.id == InventoryMovementLine.from_node_id)
        .outerjoin(to_node, to_node.id == InventoryMovementLine.to_node_id)
        .filter(InventoryMovementLine.organization_id == organization_id)
        .order_by(InventoryMovementEvent.occurred_at.desc(), InventoryMovementLine.id.desc())
        .limit(clamp_limit(limit))
        .all()
    )

    results = []
    for line, event, item, unit, source, target in rows:
        results.append(
            schemas.MovementListRow(
                line_id=line.id,
                line_no=line.line_no,
                event_id=event.id,
                event_type=event.event_type,
                status=event.status,
                occurred_at=event.occurred_at,
                reference_type=event.reference_type,
                reference_id=event.reference_id,
                note=event.note,
                item_id=line.item_id,
                item_code=item.code if item else None,
                item_name=item.name if item else None,
                unit_id=line.unit_id,
                unit_code=unit.code if unit else None,
                quantity=line.quantity,
                from_node_id=line.from_node_id,
                from_node_type=source.node_type if source else None,
                from_node_name=source.name if source else None,
                to_node_id=line.to_node_id,
                to_node_type=target.node_type if target else None,
                to_node_name=target.name if target else None,
            )
        )
    return results
