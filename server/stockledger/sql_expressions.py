from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite


def upsert_statement(
    table: Table,
    values: dict,
    *,
    conflict_columns: list[str],
    update_columns: list[str],
    dialect_name: str,
):
    """Return INSERT ... ON CONFLICT DO UPDATE for the session's dialect."""
    if dialect_name == "postgresql":
        insert = postgresql.insert(table).values(**values)
    elif dialect_name == "sqlite":
        insert = sqlite.insert(table).values(**values)
    else:
        raise NotImplementedError(f"Upsert is not supported for dialect '{dialect_name}'")

    return insert.on_conflict_do_update(
        index_elements=conflict_columns,
        set_={column: insert.excluded[column] for column in update_columns},
    )
