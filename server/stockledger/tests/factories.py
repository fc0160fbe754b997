from decimal import Decimal
from types import SimpleNamespace

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from stockledger.db import Base
from stockledger.models import Item, Unit, Warehouse
from stockledger.nodes.service import find_by_ref
from stockledger.nodes.sync import sync_warehouse_node
from stockledger.seed import bootstrap_organization


def create_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)()


def create_item(db, organization_id, code="I1", name="Widget", unit=None, active=True):
    if unit is None:
        unit = db.query(Unit).filter(Unit.organization_id == organization_id, Unit.code == "PCS").first()
    item = Item(organization_id=organization_id, code=code, name=name, unit_id=unit.id, active=active)
    db.add(item)
    db.flush()
    return item


def create_warehouse(db, organization_id, name="W1"):
    warehouse = Warehouse(organization_id=organization_id, name=name)
    db.add(warehouse)
    node = sync_warehouse_node(db, warehouse)
    return warehouse, node


def seed_ledger(db, name="Acme", code="ACME"):
    """Organization with one warehouse node, the standard virtual nodes and one item."""
    organization = bootstrap_organization(db, name, code)
    warehouse, warehouse_node = create_warehouse(db, organization.id)
    item = create_item(db, organization.id)
    return SimpleNamespace(
        organization=organization,
        organization_id=organization.id,
        warehouse=warehouse,
        warehouse_node=warehouse_node,
        external_node=find_by_ref(db, organization.id, "VIRTUAL", "virtual", "EXTERNAL"),
        adjustment_node=find_by_ref(db, organization.id, "VIRTUAL", "virtual", "ADJUSTMENT"),
        item=item,
        unit=db.get(Unit, item.unit_id),
    )


def line(source, target, item, quantity, unit_id=None):
    return {
        "item_id": item.id,
        "unit_id": unit_id,
        "from_node_id": source.id,
        "to_node_id": target.id,
        "quantity": Decimal(str(quantity)),
    }


def api_line(source_id, target_id, item_id, quantity, unit_id=None):
    return {
        "item_id": item_id,
        "unit_id": unit_id,
        "from_node_id": source_id,
        "to_node_id": target_id,
        "quantity": str(quantity),
    }
