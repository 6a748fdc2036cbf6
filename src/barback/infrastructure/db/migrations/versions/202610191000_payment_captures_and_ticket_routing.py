"""payment captures and ticket routing

Revision ID: 202610191000
Revises: 202610181000
Create Date: 2026-10-19 10:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "202610191000"
down_revision = "202610181000"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "payments",
        sa.Column("captures", sa.JSON(), nullable=False, server_default="[]"),
    )
    op.add_column(
        "kitchen_tickets",
        sa.Column("routing", sa.String(length=20), nullable=False, server_default="AUTO"),
    )
    op.alter_column("payments", "captures", server_default=None)
    op.alter_column("kitchen_tickets", "routing", server_default=None)


def downgrade() -> None:
    op.drop_column("kitchen_tickets", "routing")
    op.drop_column("payments", "captures")
