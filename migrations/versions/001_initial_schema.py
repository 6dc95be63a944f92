"""Initial schema - the employees table.

CONCEPT: `version` backs SQLAlchemy's optimistic locking (version_id_col).
It is NOT NULL and starts at 1; the ORM increments it on every UPDATE.

Revision ID: 001
Create Date: 2025-01-01
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "employees",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("version", sa.Integer, nullable=False, server_default=sa.text("1")),
    )
    op.create_index("idx_employee_name", "employees", ["name"])
    op.create_index("idx_employee_role", "employees", ["role"])


def downgrade() -> None:
    op.drop_index("idx_employee_role", table_name="employees")
    op.drop_index("idx_employee_name", table_name="employees")
    op.drop_table("employees")
