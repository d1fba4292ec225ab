"""Normalize legacy feature strings into JSON lists

Revision ID: 4b8e1f2a9c3d
Revises:
Create Date: 2026-10-19 09:12:44.318205

"""
from typing import Sequence, Union

from alembic import op

from crm.services.feature_migration import migrate_features


# revision identifiers, used by Alembic.
revision: str = '4b8e1f2a9c3d'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    migrate_features(op.get_bind())


def downgrade():
    # Lists are a valid form of the column; nothing to undo
    pass
