# Overview: The fixed role/operation policy matrix.
# Each entry maps an operation to the roles allowed to perform it.

from ..models.auth import ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF
from .tables import TableClass, Operation


ANY_AUTHENTICATED = frozenset({ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF})
ADMIN_OR_MANAGER = frozenset({ROLE_ADMIN, ROLE_MANAGER})
ADMIN_ONLY = frozenset({ROLE_ADMIN})


POLICY_MATRIX = {
    TableClass.SUPPLY: {
        Operation.READ: ANY_AUTHENTICATED,
        Operation.INSERT: ADMIN_OR_MANAGER,
        Operation.UPDATE: ADMIN_OR_MANAGER,
        Operation.DELETE: ADMIN_ONLY,
    },
    TableClass.FRONT_DESK: {
        Operation.READ: ANY_AUTHENTICATED,
        Operation.INSERT: ANY_AUTHENTICATED,
        Operation.UPDATE: ADMIN_OR_MANAGER,
        Operation.DELETE: ADMIN_ONLY,
    },
    TableClass.BACK_OFFICE: {
        Operation.READ: ANY_AUTHENTICATED,
        Operation.INSERT: ADMIN_OR_MANAGER,
        Operation.UPDATE: ADMIN_OR_MANAGER,
        Operation.DELETE: ADMIN_ONLY,
    },
}
