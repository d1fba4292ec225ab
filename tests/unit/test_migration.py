"""
Rewriting legacy feature strings on existing rows
"""
import pytest
import sqlalchemy as sa

from crm.services.feature_migration import migrate_features


@pytest.fixture
def legacy_engine():
    engine = sa.create_engine("sqlite://")
    metadata = sa.MetaData()
    for name in ("projects", "leads"):
        sa.Table(name, metadata, sa.Column("id", sa.Integer, primary_key=True), sa.Column("features", sa.JSON))
    metadata.create_all(engine)

    projects = sa.table("projects", sa.column("id", sa.Integer), sa.column("features", sa.JSON))
    leads = sa.table("leads", sa.column("id", sa.Integer), sa.column("features", sa.JSON))
    with engine.begin() as connection:
        connection.execute(projects.insert(), [
            {"id": 1, "features": "contact-formblogseo"},
            {"id": 2, "features": ["gallery"]},
            {"id": 3, "features": None},
        ])
        connection.execute(leads.insert(), [
            {"id": 1, "features": "booking, gallery"},
        ])
    yield engine
    engine.dispose()


def _features(engine, table):
    with engine.connect() as connection:
        rows = connection.execute(sa.text(f"SELECT id, features FROM {table} ORDER BY id")).fetchall()
    return {row_id: value for row_id, value in rows}


def test_rewrites_string_rows(legacy_engine):
    with legacy_engine.begin() as connection:
        changed = migrate_features(connection)

    assert changed == {"projects": 1, "leads": 1}

    table = sa.table("projects", sa.column("id", sa.Integer), sa.column("features", sa.JSON))
    with legacy_engine.connect() as connection:
        rows = dict(connection.execute(sa.select(table.c.id, table.c.features)).fetchall())
    assert rows[1] == ["contact-form", "blog", "seo"]
    assert rows[2] == ["gallery"]
    assert rows[3] is None


def test_second_run_changes_nothing(legacy_engine):
    with legacy_engine.begin() as connection:
        migrate_features(connection)
    with legacy_engine.begin() as connection:
        assert migrate_features(connection) == {"projects": 0, "leads": 0}


def test_dry_run_leaves_rows_untouched(legacy_engine):
    before = _features(legacy_engine, "leads")
    with legacy_engine.begin() as connection:
        changed = migrate_features(connection, dry_run=True)

    assert changed == {"projects": 1, "leads": 1}
    assert _features(legacy_engine, "leads") == before
