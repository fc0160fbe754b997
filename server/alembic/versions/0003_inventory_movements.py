"""inventory movement events and lines

Revision ID: 0003_inventory_movements
Revises: 0002_nodes
Create Date: 2026-03-02 00:00:02.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "0003_inventory_movements"
down_revision = "0002_nodes"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "inventory_movement_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_type", sa.String(length=32), nullable=False, server_default="MOVE"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="POSTED"),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("reference_type", sa.String(length=64), nullable=True),
        sa.Column("reference_id", sa.String(length=64), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("status in ('DRAFT','POSTED','CANCELLED')", name="ck_inventory_movement_events_status"),
    )
    op.create_index(
        "ix_inventory_movement_events_org_occurred",
        "inventory_movement_events",
        ["organization_id", "occurred_at"],
    )

    op.create_table(
        "inventory_movement_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("inventory_movement_events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("line_no", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("from_node_id", sa.Integer(), sa.ForeignKey("nodes.id"), nullable=False),
        sa.Column("to_node_id", sa.Integer(), sa.ForeignKey("nodes.id"), nullable=False),
        sa.Column("quantity", sa.Numeric(18, 3), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("event_id", "line_no", name="uq_inventory_movement_line_no"),
        sa.CheckConstraint("quantity > 0", name="ck_inventory_movement_lines_qty"),
        sa.CheckConstraint("from_node_id <> to_node_id", name="ck_inventory_movement_lines_from_to"),
    )
    op.create_index("ix_inventory_movement_lines_to_item", "inventory_movement_lines", ["to_node_id", "item_id"])
    op.create_index("ix_inventory_movement_lines_from_item", "inventory_movement_lines", ["from_node_id", "item_id"])
    op.create_index("ix_inventory_movement_lines_org_item", "inventory_movement_lines", ["organization_id", "item_id"])


def downgrade() -> None:
    op.drop_index("ix_inventory_movement_lines_org_item", table_name="inventory_movement_lines")
    op.drop_index("ix_inventory_movement_lines_from_item", table_name="inventory_movement_lines")
    op.drop_index("ix_inventory_movement_lines_to_item", table_name="inventory_movement_lines")
    op.drop_table("inventory_movement_lines")
    op.drop_index("ix_inventory_movement_events_org_occurred", table_name="inventory_movement_events")
    op.drop_table("inventory_movement_events")
