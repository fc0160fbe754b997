"""node registry

Revision ID: 0002_nodes
Revises: 0001_initial
Create Date: 2026-03-02 00:00:01.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "0002_nodes"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "nodes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("node_type", sa.String(length=32), nullable=False),
        sa.Column("ref_table", sa.String(length=64), nullable=False),
        sa.Column("ref_id", sa.String(length=64), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_stocked", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("meta_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("organization_id", "node_type", "ref_table", "ref_id", name="uq_node_ref"),
        sa.CheckConstraint(
            "node_type in ('WAREHOUSE','LOCATION','SUPPLIER','CUSTOMER','ASSET','VIRTUAL')",
            name="ck_nodes_node_type",
        ),
    )
    op.create_index("ix_nodes_organization_type", "nodes", ["organization_id", "node_type"])


def downgrade() -> None:
    op.drop_index("ix_nodes_organization_type", table_name="nodes")
    op.drop_table("nodes")
