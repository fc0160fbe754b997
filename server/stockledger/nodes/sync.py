"""Keep the node projection in step with the rows that own a node.

Every write path for warehouses, locations, suppliers and customers calls the
matching ``sync_*`` routine (or ``remove_source_node`` on delete) inside its own
transaction, so a source row and its node never disagree after commit.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from stockledger.errors import (
    DuplicateNodeError,
    LedgerValidationError,
    NodeNotFoundError,
    SourceNotFoundError,
    TenantMismatchError,
)
from stockledger.models import Customer, Location, Node, Supplier, Warehouse
from stockledger.nodes.refs import (
    CustomerMeta,
    LocationMeta,
    NodeRef,
    SupplierMeta,
    WarehouseMeta,
    customer_ref,
    location_ref,
    supplier_ref,
    virtual_ref,
    warehouse_ref,
)
from stockledger.nodes.service import (
    delete_ref_node,
    find_by_ref,
    upsert_node_for_ref,
    upsert_ref_node,
    upsert_virtual_node,
)

logger = logging.getLogger(__name__)


def sync_warehouse_node(db: Session, warehouse: Warehouse) -> Node:
    db.flush()
    return upsert_node_for_ref(
        db,
        warehouse.organization_id,
        warehouse_ref(warehouse.id),
        warehouse.name,
        is_stocked=True,
        meta=WarehouseMeta(location_id=warehouse.location_id),
    )


def sync_location_node(db: Session, location: Location) -> Node:
    db.flush()
    return upsert_node_for_ref(
        db,
        location.organization_id,
        location_ref(location.id),
        location.name,
        is_stocked=True,
        meta=LocationMeta(parent_id=location.parent_id),
    )


def sync_supplier_node(db: Session, supplier: Supplier) -> Node:
    db.flush()
    return upsert_node_for_ref(
        db,
        supplier.organization_id,
        supplier_ref(supplier.id),
        supplier.name,
        code=supplier.kind,
        is_stocked=False,
        meta=SupplierMeta(kind=supplier.kind, active=supplier.active, email=supplier.email, phone=supplier.phone),
    )


def sync_customer_node(db: Session, customer: Customer) -> Node:
    db.flush()
    return upsert_node_for_ref(
        db,
        customer.organization_id,
        customer_ref(customer.id),
        customer.name,
        is_stocked=False,
        meta=CustomerMeta(active=customer.active, email=customer.email, phone=customer.phone),
    )


SOURCE_SYNC = {
    "WAREHOUSE": (Warehouse, sync_warehouse_node),
    "LOCATION": (Location, sync_location_node),
    "SUPPLIER": (Supplier, sync_supplier_node),
    "CUSTOMER": (Customer, sync_customer_node),
}


def remove_source_node(db: Session, organization_id: int, ref: NodeRef) -> Optional[int]:
    try:
        return delete_ref_node(db, organization_id, ref.node_type, ref.ref_table, ref.ref_id)
    except NodeNotFoundError:
        logger.debug("No node registered for %s:%s; nothing to remove", ref.ref_table, ref.ref_id)
        return None


def register_node(
    db: Session,
    organization_id: int,
    *,
    node_type: str,
    ref_id: str,
    name: Optional[str] = None,
    code: Optional[str] = None,
    is_stocked: Optional[bool] = None,
    meta: Optional[dict] = None,
) -> Node:
    """Strict create for the registry endpoint.

    Sourced kinds derive their fields from the source row; an explicit name or
    flag in the request is ignored for them.
    """
    if node_type in SOURCE_SYNC:
        model, sync = SOURCE_SYNC[node_type]
        try:
            source_id = int(ref_id)
        except (TypeError, ValueError):
            raise LedgerValidationError(f"Invalid reference id: {ref_id}") from None

        source = db.query(model).filter(model.id == source_id).first()
        if not source:
            raise SourceNotFoundError(f"{model.__name__} not found.")
        if source.organization_id != organization_id:
            logger.warning(
                "Rejected node registration for %s %s owned by organization %s",
                model.__name__,
                source_id,
                source.organization_id,
            )
            raise TenantMismatchError()
        if find_by_ref(db, organization_id, node_type, model.__tablename__, source_id):
            raise DuplicateNodeError()
        return sync(db, source)

    if not name:
        raise LedgerValidationError("Name is required for this node type.")

    if node_type == "VIRTUAL":
        ref = virtual_ref(ref_id)
        if find_by_ref(db, organization_id, ref.node_type, ref.ref_table, ref.ref_id):
            raise DuplicateNodeError()
        return upsert_virtual_node(
            db,
            organization_id,
            ref_id,
            name,
            is_stocked=bool(is_stocked),
            meta=dict(meta, kind=ref_id) if meta else None,
        )

    ref_table = "assets"
    if find_by_ref(db, organization_id, node_type, ref_table, ref_id):
        raise DuplicateNodeError()
    return upsert_ref_node(
        db,
        organization_id,
        node_type,
        ref_table,
        ref_id,
        name,
        code=code,
        is_stocked=True if is_stocked is None else is_stocked,
        meta=meta,
    )
