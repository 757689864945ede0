# Overview: Access policy package.
# Re-exports all public APIs for shorter imports.

from .tables import TableClass, Operation, TABLE_CLASSES
from .definitions import POLICY_MATRIX, ANY_AUTHENTICATED, ADMIN_OR_MANAGER, ADMIN_ONLY
from .helpers import get_table_class, get_allowed_roles, describe_matrix

__all__ = [
    "TableClass",
    "Operation",
    "TABLE_CLASSES",
    "POLICY_MATRIX",
    "ANY_AUTHENTICATED",
    "ADMIN_OR_MANAGER",
    "ADMIN_ONLY",
    "get_table_class",
    "get_allowed_roles",
    "describe_matrix",
]
