"""
One-time rewrite of legacy ``features`` values into JSON lists.

Runs on a plain SQLAlchemy connection so the alembic revision and the
``migrate_features.py`` command share it.
"""
import logging
from typing import Dict

import sqlalchemy as sa

from crm.features import normalize_features

logger = logging.getLogger(__name__)

FEATURE_TABLES = ("projects", "leads")


def _features_table(name: str) -> sa.Table:
    return sa.table(name, sa.column("id", sa.Integer), sa.column("features", sa.JSON))


def migrate_features(connection, dry_run: bool = False) -> Dict[str, int]:
    """Rewrite string features on projects and leads; returns changed rows per table."""
    changed = {}
    for name in FEATURE_TABLES:
        table = _features_table(name)
        rows = connection.execute(sa.select(table.c.id, table.c.features)).fetchall()

        count = 0
        for row_id, features in rows:
            if features is None or isinstance(features, list):
                continue

            normalized = normalize_features(features)
            count += 1
            logger.info("%s %s: %r -> %r", name, row_id, features, normalized)
            if not dry_run:
                connection.execute(
                    table.update().where(table.c.id == row_id).values(features=normalized)
                )

        changed[name] = count
    return changed
