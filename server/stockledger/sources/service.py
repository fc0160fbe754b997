import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from stockledger.errors import ConflictError, LedgerValidationError, SourceNotFoundError
from stockledger.models import Customer, Location, Supplier, Warehouse
from stockledger.nodes.refs import customer_ref, location_ref, supplier_ref, warehouse_ref
from stockledger.nodes.sync import (
    remove_source_node,
    sync_customer_node,
    sync_location_node,
    sync_supplier_node,
    sync_warehouse_node,
)

logger = logging.getLogger(__name__)

SOURCE_HANDLERS = {
    Warehouse: (warehouse_ref, sync_warehouse_node),
    Location: (location_ref, sync_location_node),
    Supplier: (supplier_ref, sync_supplier_node),
    Customer: (customer_ref, sync_customer_node),
}


def get_source(db: Session, model, organization_id: int, source_id: int):
    source = db.query(model).filter(model.organization_id == organization_id, model.id == source_id).first()
    if not source:
        raise SourceNotFoundError(f"{model.__name__} not found.")
    return source


def list_sources(db: Session, model, organization_id: int) -> list:
    return db.query(model).filter(model.organization_id == organization_id).order_by(model.name.asc(), model.id.asc()).all()


def _check_location(db: Session, organization_id: int, location_id: Optional[int], *, label: str) -> None:
    if location_id is None:
        return
    exists = (
        db.query(Location.id)
        .filter(Location.organization_id == organization_id, Location.id == location_id)
        .first()
    )
    if exists is None:
        raise LedgerValidationError(f"Invalid {label}")


def _check_parent_cycle(db: Session, location: Location, parent_id: Optional[int]) -> None:
    seen = {location.id}
    current = parent_id
    while current is not None:
        if current in seen:
            raise LedgerValidationError("Location cannot be its own ancestor.")
        seen.add(current)
        current = db.query(Location.parent_id).filter(Location.id == current).scalar()


def _validate_values(db: Session, model, organization_id: int, values: dict[str, Any], source=None) -> None:
    if model is Warehouse:
        _check_location(db, organization_id, values.get("location_id"), label="location")
    elif model is Location:
        _check_location(db, organization_id, values.get("parent_id"), label="parent location")
        if source is not None and "parent_id" in values:
            _check_parent_cycle(db, source, values["parent_id"])


def _sync(db: Session, source) -> None:
    _, sync = SOURCE_HANDLERS[type(source)]
    sync(db, source)


def create_source(db: Session, model, organization_id: int, values: dict[str, Any]):
    _validate_values(db, model, organization_id, values)
    source = model(organization_id=organization_id, **values)
    db.add(source)
    _sync(db, source)
    logger.info("Created %s %s for organization %s", model.__name__, source.id, organization_id)
    return source


def update_source(db: Session, source, values: dict[str, Any]):
    _validate_values(db, type(source), source.organization_id, values, source)
    for key, value in values.items():
        setattr(source, key, value)
    _sync(db, source)
    logger.info("Updated %s %s", type(source).__name__, source.id)
    return source


def delete_source(db: Session, source) -> None:
    """Delete a source row and its node; fails with NodeInUseError while the node has ledger lines."""
    if isinstance(source, Location):
        has_children = (
            db.query(Location.id).filter(Location.parent_id == source.id).first() is not None
            or db.query(Warehouse.id).filter(Warehouse.location_id == source.id).first() is not None
        )
        if has_children:
            raise ConflictError("Location has child locations or warehouses. Remove them first.")

    ref_builder, _ = SOURCE_HANDLERS[type(source)]
    remove_source_node(db, source.organization_id, ref_builder(source.id))
    db.delete(source)
    db.flush()
    logger.info("Deleted %s %s", type(source).__name__, source.id)
