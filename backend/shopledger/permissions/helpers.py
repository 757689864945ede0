# Overview: Lookups over the policy matrix.

from .definitions import POLICY_MATRIX
from .tables import TABLE_CLASSES, Operation


def get_table_class(table):
    """Policy row for a table name, or None for tables outside the matrix."""
    return TABLE_CLASSES.get(table)


def get_allowed_roles(table, operation):
    """Roles allowed to perform operation on table (empty for unknown input)."""
    table_class = get_table_class(table)
    if table_class is None:
        return frozenset()
    return POLICY_MATRIX[table_class].get(operation, frozenset())


def describe_matrix():
    """Flattened matrix, one row per table, for display and audits."""
    rows = []
    for table in sorted(TABLE_CLASSES):
        rows.append({
            "table": table,
            "table_class": TABLE_CLASSES[table],
            **{op: sorted(get_allowed_roles(table, op)) for op in Operation.ALL},
        })
    return rows
