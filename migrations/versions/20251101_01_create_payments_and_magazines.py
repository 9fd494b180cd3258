"""create payments ledger and magazines tables

Revision ID: payments_magazines_2025
Revises:
Create Date: 2025-11-01 10:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "payments_magazines_2025"
down_revision = None
branch_labels = None
depends_on = None

payment_status = sa.Enum("Paid", "Cancel", name="paymentstatus")


def upgrade():
    op.create_table(
        "payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("transaction_key", sa.String(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("status", payment_status, nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_grace_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("next_schedule_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("next_schedule_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_payments_transaction_key", "payments", ["transaction_key"], unique=False)
    op.create_index(
        "ix_payments_transaction_key_created_at",
        "payments",
        ["transaction_key", "created_at"],
        unique=False,
    )

    op.create_table(
        "magazines",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("image_url", sa.String(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_magazines_category", "magazines", ["category"], unique=False)


def downgrade():
    op.drop_index("ix_magazines_category", table_name="magazines")
    op.drop_table("magazines")
    op.drop_index("ix_payments_transaction_key_created_at", table_name="payments")
    op.drop_index("ix_payments_transaction_key", table_name="payments")
    op.drop_table("payments")
    payment_status.drop(op.get_bind(), checkfirst=True)
