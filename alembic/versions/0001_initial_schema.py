"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "lab_reports",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("report_date", sa.Date(), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("file_type", sa.String(length=100), nullable=True),
        sa.Column("retest_recommendation", sa.String(length=50), nullable=True),
        sa.Column("processed_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_lab_reports_report_date", "lab_reports", ["report_date"], unique=False)
    op.create_index("ix_lab_reports_user_id", "lab_reports", ["user_id"], unique=False)

    op.create_table(
        "test_results",
        sa.Column("id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), autoincrement=True, nullable=False),
        sa.Column("report_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("test_name", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(length=50), nullable=False),
        sa.Column("reference_range", sa.String(length=100), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False),
        sa.ForeignKeyConstraint(["report_id"], ["lab_reports.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_test_results_report_id", "test_results", ["report_id"], unique=False)
    op.create_index("ix_test_results_test_name", "test_results", ["test_name"], unique=False)

    op.create_table(
        "knowledge_items",
        sa.Column("seq", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("item_id", sa.String(length=100), nullable=False),
        sa.Column("namespace", sa.String(length=50), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("vector", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("seq"),
    )
    op.create_index("ix_knowledge_items_item_id", "knowledge_items", ["item_id"], unique=True)
    op.create_index("ix_knowledge_items_namespace", "knowledge_items", ["namespace"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_knowledge_items_namespace", table_name="knowledge_items")
    op.drop_index("ix_knowledge_items_item_id", table_name="knowledge_items")
    op.drop_table("knowledge_items")

    op.drop_index("ix_test_results_test_name", table_name="test_results")
    op.drop_index("ix_test_results_report_id", table_name="test_results")
    op.drop_table("test_results")

    op.drop_index("ix_lab_reports_user_id", table_name="lab_reports")
    op.drop_index("ix_lab_reports_report_date", table_name="lab_reports")
    op.drop_table("lab_reports")
