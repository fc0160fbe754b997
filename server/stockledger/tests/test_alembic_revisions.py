import re
from pathlib import Path

VERSIONS_DIR = Path(__file__).resolve().parents[2] / "alembic" / "versions"


def _read_revisions() -> dict[str, tuple[str, str | None]]:
    revisions = {}
    for migration_file in VERSIONS_DIR.glob("*.py"):
        text = migration_file.read_text(encoding="utf-8")
        revision = re.search(r'^revision = "([^"]+)"', text, re.MULTILINE)
        down_revision = re.search(r'^down_revision = (?:"([^"]+)"|None)', text, re.MULTILINE)
        if not revision:
            continue
        revisions[revision.group(1)] = (migration_file.name, down_revision.group(1) if down_revision else None)
    return revisions


def test_alembic_revision_ids_fit_version_table_limit():
    """Postgres alembic_version.version_num is varchar(32) in this project."""
    too_long = [(name, revision, len(revision)) for revision, (name, _) in _read_revisions().items() if len(revision) > 32]

    assert not too_long, (
        "Alembic revision IDs must be <= 32 chars to fit alembic_version.version_num. "
        f"Found: {too_long}"
    )


def test_alembic_history_is_a_single_linear_chain():
    revisions = _read_revisions()
    parents = [down for _, down in revisions.values()]

    assert parents.count(None) == 1
    assert all(down is None or down in revisions for down in parents)
    assert len(set(parents)) == len(parents)
