"""initial schema

Revision ID: 202610191200
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610191200"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("lastname", sa.String(length=100), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        *_timestamps(),
    )

    for table in ("expense_types", "income_types"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column(
                "is_global", sa.Boolean(), nullable=False, server_default=sa.false()
            ),
            sa.Column(
                "user_id",
                sa.Integer(),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
            ),
            sa.Column("archived_at", sa.DateTime()),
            *_timestamps(),
        )

    for table, type_table in (
        ("expenses", "expense_types"),
        ("incomes", "income_types"),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("description", sa.String(length=200), nullable=False),
            sa.Column("value", sa.Numeric(12, 2), nullable=False),
            sa.Column("status", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("date", sa.Date(), nullable=False),
            sa.Column("observation", sa.Text()),
            sa.Column(
                "user_id",
                sa.Integer(),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column(
                "type_id",
                sa.Integer(),
                sa.ForeignKey(f"{type_table}.id"),
            ),
            *_timestamps(),
        )
        op.create_index(f"ix_{table}_user_date", table, ["user_id", "date"])

    op.create_index(
        "ix_expenses_user_type_date", "expenses", ["user_id", "type_id", "date"]
    )
    op.create_index(
        "ix_incomes_user_status_date", "incomes", ["user_id", "status", "date"]
    )

    op.create_table(
        "saving_goals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("value", sa.Numeric(12, 2), nullable=False),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("status", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index("ix_saving_goals_user_date", "saving_goals", ["user_id", "date"])


def downgrade():
    op.drop_index("ix_saving_goals_user_date", table_name="saving_goals")
    op.drop_table("saving_goals")
    op.drop_index("ix_incomes_user_status_date", table_name="incomes")
    op.drop_index("ix_expenses_user_type_date", table_name="expenses")
    for table in ("incomes", "expenses"):
        op.drop_index(f"ix_{table}_user_date", table_name=table)
        op.drop_table(table)
    op.drop_table("income_types")
    op.drop_table("expense_types")
    op.drop_table("users")
