from datetime import datetime
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base

NODE_TYPES = ("WAREHOUSE", "LOCATION", "SUPPLIER", "CUSTOMER", "ASSET", "VIRTUAL")
MOVEMENT_STATUSES = ("DRAFT", "POSTED", "CANCELLED")


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    code = Column(String(64), nullable=True, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    users = relationship("User", back_populates="organization")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    organization = relationship("Organization", back_populates="users")


class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    code = Column(String(32), nullable=False)
    name = Column(String(100), nullable=False)
    symbol = Column(String(16), nullable=True)
    active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_unit_organization_code"),
    )


class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    code = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    unit = relationship("Unit")

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_item_organization_code"),
    )


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    parent = relationship("Location", remote_side=[id])


class Warehouse(Base):
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    location = relationship("Location")


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    kind = Column(String(32), nullable=False, default="SUPPLIER")
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Node(Base):
    __tablename__ = "nodes"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    node_type = Column(String(32), nullable=False)
    ref_table = Column(String(64), nullable=False)
    ref_id = Column(String(64), nullable=False)
    code = Column(String(64), nullable=True)
    name = Column(String(255), nullable=False)
    is_stocked = Column(Boolean, default=True, nullable=False)
    meta_json = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("organization_id", "node_type", "ref_table", "ref_id", name="uq_node_ref"),
        CheckConstraint(
            "node_type in ('WAREHOUSE','LOCATION','SUPPLIER','CUSTOMER','ASSET','VIRTUAL')",
            name="ck_nodes_node_type",
        ),
        Index("ix_nodes_organization_type", "organization_id", "node_type"),
    )


class InventoryMovementEvent(Base):
    __tablename__ = "inventory_movement_events"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    event_type = Column(String(32), nullable=False, default="MOVE")
    status = Column(String(16), nullable=False, default="POSTED")
    occurred_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    reference_type = Column(String(64), nullable=True)
    reference_id = Column(String(64), nullable=True)
    note = Column(Text, nullable=True)
    created_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    lines = relationship(
        "InventoryMovementLine",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="InventoryMovementLine.line_no",
    )

    __table_args__ = (
        CheckConstraint("status in ('DRAFT','POSTED','CANCELLED')", name="ck_inventory_movement_events_status"),
        Index("ix_inventory_movement_events_org_occurred", "organization_id", "occurred_at"),
    )

    @property
    def is_mutable(self) -> bool:
        return self.status == "DRAFT"


class InventoryMovementLine(Base):
    __tablename__ = "inventory_movement_lines"

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("inventory_movement_events.id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    line_no = Column(Integer, nullable=False, default=1)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    from_node_id = Column(Integer, ForeignKey("nodes.id"), nullable=False)
    to_node_id = Column(Integer, ForeignKey("nodes.id"), nullable=False)
    quantity = Column(Numeric(18, 3), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    event = relationship("InventoryMovementEvent", back_populates="lines")
    item = relationship("Item")
    unit = relationship("Unit")
    from_node = relationship("Node", foreign_keys=[from_node_id])
    to_node = relationship("Node", foreign_keys=[to_node_id])

    __table_args__ = (
        UniqueConstraint("event_id", "line_no", name="uq_inventory_movement_line_no"),
        CheckConstraint("quantity > 0", name="ck_inventory_movement_lines_qty"),
        CheckConstraint("from_node_id <> to_node_id", name="ck_inventory_movement_lines_from_to"),
        Index("ix_inventory_movement_lines_to_item", "to_node_id", "item_id"),
        Index("ix_inventory_movement_lines_from_item", "from_node_id", "item_id"),
        Index("ix_inventory_movement_lines_org_item", "organization_id", "item_id"),
    )
