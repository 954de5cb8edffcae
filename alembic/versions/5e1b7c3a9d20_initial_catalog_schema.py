"""initial catalog schema

Revision ID: 5e1b7c3a9d20
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "5e1b7c3a9d20"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "equipment_types",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["parent_id"], ["equipment_types.id"], ondelete="RESTRICT"),
        sa.UniqueConstraint("name", "parent_id", name="uq_equipment_types_name_parent"),
    )
    op.create_index(op.f("ix_equipment_types_name"), "equipment_types", ["name"], unique=False)
    op.create_index(op.f("ix_equipment_types_parent_id"), "equipment_types", ["parent_id"], unique=False)
    op.create_index(op.f("ix_equipment_types_level"), "equipment_types", ["level"], unique=False)

    op.create_table(
        "equipments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("equipment_type_id", sa.Integer(), nullable=False),
        sa.Column("brand", sa.String(length=255), nullable=True),
        sa.Column("model", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_deleted", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["equipment_type_id"], ["equipment_types.id"], ondelete="RESTRICT"),
    )
    op.create_index(op.f("ix_equipments_name"), "equipments", ["name"], unique=False)
    op.create_index(op.f("ix_equipments_equipment_type_id"), "equipments", ["equipment_type_id"], unique=False)
    op.create_index(op.f("ix_equipments_brand"), "equipments", ["brand"], unique=False)
    op.create_index(op.f("ix_equipments_model"), "equipments", ["model"], unique=False)
    op.create_index("ix_equipments_is_deleted", "equipments", ["is_deleted"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_equipments_is_deleted", table_name="equipments")
    op.drop_index(op.f("ix_equipments_model"), table_name="equipments")
    op.drop_index(op.f("ix_equipments_brand"), table_name="equipments")
    op.drop_index(op.f("ix_equipments_equipment_type_id"), table_name="equipments")
    op.drop_index(op.f("ix_equipments_name"), table_name="equipments")
    op.drop_table("equipments")

    op.drop_index(op.f("ix_equipment_types_level"), table_name="equipment_types")
    op.drop_index(op.f("ix_equipment_types_parent_id"), table_name="equipment_types")
    op.drop_index(op.f("ix_equipment_types_name"), table_name="equipment_types")
    op.drop_table("equipment_types")
