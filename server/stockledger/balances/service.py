import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, select, union_all
from sqlalchemy.orm import Session

from stockledger.balances import schemas
from stockledger.errors import LedgerValidationError
from stockledger.ledger.service import normalize_timestamp
from stockledger.models import MOVEMENT_STATUSES, InventoryMovementEvent, InventoryMovementLine, Item, Node, Unit
from stockledger.utils import quantize_qty

logger = logging.getLogger(__name__)

DEFAULT_BALANCE_STATUSES = ("POSTED",)


def parse_statuses(statuses: Optional[Iterable[str]]) -> list[str]:
    if statuses is None:
        return list(DEFAULT_BALANCE_STATUSES)
    parsed = [value.strip().upper() for value in statuses if value and value.strip()]
    invalid = sorted({value for value in parsed if value not in MOVEMENT_STATUSES})
    if invalid:
        raise LedgerValidationError(f"Invalid movement status: {', '.join(invalid)}")
    return parsed or list(DEFAULT_BALANCE_STATUSES)


def _ledger_entries(
    organization_id: int,
    statuses: list[str],
    from_date: Optional[datetime],
    to_date: Optional[datetime],
):
    """Signed per-node entries: +qty on the receiving node, -qty on the sending one."""

    def leg(node_column, delta):
        query = (
            select(
                InventoryMovementLine.organization_id.label("organization_id"),
                node_column.label("node_id"),
                InventoryMovementLine.item_id.label("item_id"),
                delta.label("delta"),
            )
            .join(InventoryMovementEvent, InventoryMovementEvent.id == InventoryMovementLine.event_id)
            .where(
                InventoryMovementLine.organization_id == organization_id,
                InventoryMovementEvent.status.in_(statuses),
            )
        )
        if from_date is not None:
            query = query.where(InventoryMovementEvent.occurred_at >= from_date)
        if to_date is not None:
            query = query.where(InventoryMovementEvent.occurred_at <= to_date)
        return query

    return union_all(
        leg(InventoryMovementLine.to_node_id, InventoryMovementLine.quantity),
        leg(InventoryMovementLine.from_node_id, -InventoryMovementLine.quantity),
    ).subquery("ledger")


def get_balances(
    db: Session,
    organization_id: int,
    *,
    node_ids: Optional[Iterable[int]] = None,
    item_ids: Optional[Iterable[int]] = None,
    statuses: Optional[Iterable[str]] = DEFAULT_BALANCE_STATUSES,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
) -> list[schemas.BalanceRow]:
    """Aggregate the movement ledger into per node/item balances.

    Recomputed from every matching line on each call. The date range is
    inclusive on both ends. Groups that net to zero at quantity precision are
    left out.
    """
    status_filter = parse_statuses(statuses)
    ledger = _ledger_entries(
        organization_id,
        status_filter,
        normalize_timestamp(from_date),
        normalize_timestamp(to_date),
    )

    balance = func.sum(ledger.c.delta).label("balance_qty")
    query = (
        db.query(
            ledger.c.node_id,
            ledger.c.item_id,
            Node.node_type,
            Node.name.label("node_name"),
            Item.code.label("item_code"),
            Item.name.label("item_name"),
            Unit.code.label("unit_code"),
            balance,
        )
        .select_from(ledger)
        .outerjoin(Node, Node.id == ledger.c.node_id)
        .outerjoin(Item, Item.id == ledger.c.item_id)
        .outerjoin(Unit, Unit.id == Item.unit_id)
    )
    node_ids = list(node_ids or [])
    item_ids = list(item_ids or [])
    if node_ids:
        query = query.filter(ledger.c.node_id.in_(node_ids))
    if item_ids:
        query = query.filter(ledger.c.item_id.in_(item_ids))

    rows = (
        query.group_by(
            ledger.c.node_id,
            ledger.c.item_id,
            Node.node_type,
            Node.name,
            Item.code,
            Item.name,
            Unit.code,
        )
        .order_by(Node.node_type.asc(), Node.name.asc(), Item.code.asc(), ledger.c.node_id.asc(), ledger.c.item_id.asc())
        .all()
    )

    balances = []
    for row in rows:
        qty = quantize_qty(row.balance_qty or 0)
        if qty == 0:
            continue
        balances.append(
            schemas.BalanceRow(
                organization_id=organization_id,
                node_id=row.node_id,
                node_type=row.node_type,
                node_name=row.node_name,
                item_id=row.item_id,
                item_code=row.item_code,
                item_name=row.item_name,
                unit_code=row.unit_code,
                balance_qty=qty,
            )
        )
    logger.debug(
        "Computed %s balances for organization %s (statuses=%s)",
        len(balances),
        organization_id,
        ",".join(status_filter),
    )
    return balances
