import logging
from datetime import datetime
from typing import Iterable, Optional, Union

from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from stockledger.errors import LedgerValidationError, NodeInUseError, NodeNotFoundError
from stockledger.models import NODE_TYPES, InventoryMovementLine, Node
from stockledger.nodes.refs import STANDARD_VIRTUAL_NODES, VIRTUAL_REF_TABLE, NodeRef, VirtualMeta
from stockledger.sql_expressions import upsert_statement

logger = logging.getLogger(__name__)

NODE_REF_COLUMNS = ["organization_id", "node_type", "ref_table", "ref_id"]
NODE_MERGE_COLUMNS = ["name", "code", "is_stocked", "meta_json", "updated_at"]

MetaPayload = Union[BaseModel, dict, None]


def _meta_payload(meta: MetaPayload) -> Optional[dict]:
    if meta is None:
        return None
    if isinstance(meta, BaseModel):
        return meta.model_dump(mode="json")
    return dict(meta)


def parse_node_types(types: Optional[Iterable[str]]) -> Optional[list[str]]:
    if types is None:
        return None
    parsed = [value.strip().upper() for value in types if value and value.strip()]
    invalid = sorted({value for value in parsed if value not in NODE_TYPES})
    if invalid:
        raise LedgerValidationError(f"Invalid node type: {', '.join(invalid)}")
    return parsed or None


def find_by_ref(
    db: Session,
    organization_id: int,
    node_type: str,
    ref_table: str,
    ref_id: Union[str, int],
) -> Optional[Node]:
    return (
        db.query(Node)
        .filter(
            Node.organization_id == organization_id,
            Node.node_type == node_type,
            Node.ref_table == ref_table,
            Node.ref_id == str(ref_id),
        )
        .populate_existing()
        .first()
    )


def get_node(db: Session, organization_id: int, node_id: int) -> Optional[Node]:
    logger.debug("Loading node %s for organization %s", node_id, organization_id)
    return db.query(Node).filter(Node.organization_id == organization_id, Node.id == node_id).first()


def list_by_org(db: Session, organization_id: int, types: Optional[Iterable[str]] = None) -> list[Node]:
    node_types = parse_node_types(types)
    query = db.query(Node).filter(Node.organization_id == organization_id)
    if node_types:
        query = query.filter(Node.node_type.in_(node_types))
    return query.order_by(Node.node_type.asc(), Node.name.asc(), Node.id.asc()).all()


def upsert_ref_node(
    db: Session,
    organization_id: int,
    node_type: str,
    ref_table: str,
    ref_id: Union[str, int],
    name: str,
    code: Optional[str] = None,
    is_stocked: bool = True,
    meta: MetaPayload = None,
) -> Node:
    """Create the node for a source reference, or merge the display fields onto
    the existing one.

    Runs as a single INSERT ... ON CONFLICT statement, so two writers racing on
    the same reference both succeed and the later write wins.
    """
    if node_type not in NODE_TYPES:
        raise LedgerValidationError(f"Invalid node type: {node_type}")

    now = datetime.utcnow()
    values = {
        "organization_id": organization_id,
        "node_type": node_type,
        "ref_table": ref_table,
        "ref_id": str(ref_id),
        "code": code,
        "name": name,
        "is_stocked": is_stocked,
        "meta_json": _meta_payload(meta),
        "created_at": now,
        "updated_at": now,
    }
    statement = upsert_statement(
        Node.__table__,
        values,
        conflict_columns=NODE_REF_COLUMNS,
        update_columns=NODE_MERGE_COLUMNS,
        dialect_name=db.get_bind().dialect.name,
    )
    db.execute(statement)

    node = find_by_ref(db, organization_id, node_type, ref_table, ref_id)
    logger.info(
        "Upserted %s node %s (%s:%s) for organization %s",
        node_type,
        node.id,
        ref_table,
        ref_id,
        organization_id,
    )
    return node


def upsert_node_for_ref(
    db: Session,
    organization_id: int,
    ref: NodeRef,
    name: str,
    code: Optional[str] = None,
    is_stocked: bool = True,
    meta: MetaPayload = None,
) -> Node:
    return upsert_ref_node(
        db,
        organization_id,
        ref.node_type,
        ref.ref_table,
        ref.ref_id,
        name,
        code=code,
        is_stocked=is_stocked,
        meta=meta,
    )


def upsert_virtual_node(
    db: Session,
    organization_id: int,
    key: str,
    name: str,
    is_stocked: bool = False,
    meta: MetaPayload = None,
) -> Node:
    return upsert_ref_node(
        db,
        organization_id,
        "VIRTUAL",
        VIRTUAL_REF_TABLE,
        key,
        name,
        code=key,
        is_stocked=is_stocked,
        meta=meta if meta is not None else VirtualMeta(kind=key),
    )


def provision_virtual_nodes(db: Session, organization_id: int) -> list[Node]:
    return [
        upsert_virtual_node(db, organization_id, key, name)
        for key, name in STANDARD_VIRTUAL_NODES
    ]


def is_node_referenced(db: Session, node_id: int) -> bool:
    return (
        db.query(InventoryMovementLine.id)
        .filter(or_(InventoryMovementLine.from_node_id == node_id, InventoryMovementLine.to_node_id == node_id))
        .first()
        is not None
    )


def delete_ref_node(
    db: Session,
    organization_id: int,
    node_type: str,
    ref_table: str,
    ref_id: Union[str, int],
) -> int:
    node = find_by_ref(db, organization_id, node_type, ref_table, ref_id)
    if not node:
        raise NodeNotFoundError()

    if is_node_referenced(db, node.id):
        logger.warning(
            "Refusing to delete node %s (%s:%s); it is referenced by movement lines",
            node.id,
            ref_table,
            ref_id,
        )
        raise NodeInUseError(node.id)

    node_id = node.id
    db.delete(node)
    db.flush()
    logger.info("Deleted node %s (%s:%s) for organization %s", node_id, ref_table, ref_id, organization_id)
    return node_id
