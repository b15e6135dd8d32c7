"""Database schema DDL, built from a NestedSetSchema. All statements use IF NOT EXISTS for idempotency."""

from nestset.models import NestedSetSchema


def build_schema_sql(schema: NestedSetSchema) -> str:
    """Return the DDL script for the node table described by ``schema``.

    Interval columns carry no UNIQUE or ordering constraint: a shift moves the
    left and right bounds in separate statements, so rows pass through
    duplicated and inverted bounds mid-plan.
    """
    table = schema.table
    tree_column = ""
    if schema.tree_attribute is not None:
        tree_column = f"\n    {schema.tree_attribute} INTEGER,"

    scope = f"{schema.tree_attribute}, " if schema.tree_attribute is not None else ""

    return f"""
CREATE TABLE IF NOT EXISTS {table} (
    {schema.id_attribute} INTEGER PRIMARY KEY AUTOINCREMENT,{tree_column}
    {schema.left_attribute} INTEGER NOT NULL,
    {schema.right_attribute} INTEGER NOT NULL,
    {schema.depth_attribute} INTEGER NOT NULL,
    name TEXT,
    data TEXT,
    CHECK ({schema.depth_attribute} >= 0)
);

CREATE INDEX IF NOT EXISTS idx_{table}_left ON {table}({scope}{schema.left_attribute});
CREATE INDEX IF NOT EXISTS idx_{table}_right ON {table}({scope}{schema.right_attribute});
"""
