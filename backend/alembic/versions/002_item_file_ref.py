"""Item file reference — storage location returned by the owner-only download check.

Revision ID: 002_item_file_ref
Revises: 001_initial
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002_item_file_ref"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("items", sa.Column("file_ref", sa.String(500), nullable=True))


def downgrade() -> None:
    op.drop_column("items", "file_ref")
