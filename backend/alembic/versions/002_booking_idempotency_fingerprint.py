"""Store the request fingerprint next to a booking's idempotency key.

Revision ID: 002
Revises: 001
Create Date: 2026-10-20
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("bookings", sa.Column("idempotency_fingerprint", sa.String(128), nullable=True))


def downgrade() -> None:
    op.drop_column("bookings", "idempotency_fingerprint")
