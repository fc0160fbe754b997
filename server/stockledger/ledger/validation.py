import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from stockledger.errors import (
    BadFromNodeError,
    BadItemError,
    BadToNodeError,
    BadUnitError,
    LedgerValidationError,
    SameNodeError,
)
from stockledger.models import Item, Node, Unit
from stockledger.utils import MAX_QUANTITY, quantize_qty

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidatedLine:
    item_id: int
    unit_id: int
    from_node_id: int
    to_node_id: int
    quantity: Decimal


def _get(line: Any, key: str) -> Any:
    if isinstance(line, Mapping):
        return line.get(key)
    return getattr(line, key, None)


def _parse_quantity(value: Any, line_index: int) -> Decimal:
    if value is None:
        raise LedgerValidationError(f"Line {line_index + 1}: quantity must be greater than zero.")
    try:
        raw = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise LedgerValidationError(f"Line {line_index + 1}: quantity must be a number.") from None
    if not raw.is_finite():
        raise LedgerValidationError(f"Line {line_index + 1}: quantity must be a number.")
    if raw <= 0:
        raise LedgerValidationError(f"Line {line_index + 1}: quantity must be greater than zero.")
    if raw > MAX_QUANTITY:
        raise LedgerValidationError(f"Line {line_index + 1}: quantity is too large.")

    quantity = quantize_qty(raw)
    if quantity <= 0:
        raise LedgerValidationError(f"Line {line_index + 1}: quantity must be greater than zero.")
    return quantity


def _load_by_id(db: Session, model, organization_id: int, ids: set[int]) -> dict[int, Any]:
    if not ids:
        return {}
    rows = db.query(model).filter(model.organization_id == organization_id, model.id.in_(ids)).all()
    return {row.id: row for row in rows}


def validate_lines(db: Session, organization_id: int, lines: Sequence[Any]) -> list[ValidatedLine]:
    """Check a batch of proposed movement lines against tenant-owned master data.

    Each line is a mapping (or object) with ``item_id``, ``quantity``,
    ``from_node_id``, ``to_node_id`` and an optional ``unit_id``. Checks run in a
    fixed order over the whole batch, so the first failing kind is reported:
    same node, then nodes, then items, then units. One query is issued per
    entity kind regardless of batch size. Nothing is written.
    """
    if not lines:
        raise LedgerValidationError("At least one movement line is required.")

    for index, line in enumerate(lines):
        if _get(line, "from_node_id") == _get(line, "to_node_id"):
            raise SameNodeError(line_index=index)

    quantities = [_parse_quantity(_get(line, "quantity"), index) for index, line in enumerate(lines)]

    node_ids = {_get(line, "from_node_id") for line in lines} | {_get(line, "to_node_id") for line in lines}
    item_ids = {_get(line, "item_id") for line in lines}
    nodes = _load_by_id(db, Node, organization_id, {node_id for node_id in node_ids if node_id is not None})
    items = _load_by_id(db, Item, organization_id, {item_id for item_id in item_ids if item_id is not None})
    logger.debug(
        "Validating %s lines for organization %s (%s nodes, %s items found)",
        len(lines),
        organization_id,
        len(nodes),
        len(items),
    )

    for index, line in enumerate(lines):
        if _get(line, "from_node_id") not in nodes:
            raise BadFromNodeError(line_index=index)
        if _get(line, "to_node_id") not in nodes:
            raise BadToNodeError(line_index=index)
        item: Optional[Item] = items.get(_get(line, "item_id"))
        if item is None or not item.active:
            raise BadItemError(line_index=index)

    unit_ids = [_get(line, "unit_id") or items[_get(line, "item_id")].unit_id for line in lines]
    units = _load_by_id(db, Unit, organization_id, set(unit_ids))
    for index, unit_id in enumerate(unit_ids):
        unit: Optional[Unit] = units.get(unit_id)
        if unit is None or not unit.active:
            raise BadUnitError(line_index=index)

    return [
        ValidatedLine(
            item_id=_get(line, "item_id"),
            unit_id=unit_ids[index],
            from_node_id=_get(line, "from_node_id"),
            to_node_id=_get(line, "to_node_id"),
            quantity=quantities[index],
        )
        for index, line in enumerate(lines)
    ]
