"""create rate records

Revision ID: 3c1f0d9a2b7e
Revises: 
Create Date: 2026-10-17 09:12:41.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f0d9a2b7e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "rate_records",
        sa.Column("rate_date", sa.Date(), nullable=False),
        sa.Column("base", sa.String(length=12), nullable=False),
        sa.Column("rates", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("rate_date"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("rate_records")
