# Overview: Default grants for the four system roles.
# Least privilege: each role only lists what it needs; admin holds the wildcard.

from .definitions import Action, CRUD_ACTIONS, Resource, SystemRole, VALID_ACTIONS, WILDCARD


def _grant(resource, actions):
    return {"resource": resource, "actions": list(actions)}


DEFAULT_ROLE_GRANTS = {
    SystemRole.ADMIN: [
        _grant(WILDCARD, VALID_ACTIONS),
    ],
    SystemRole.MANAGER: [
        _grant(Resource.DASHBOARD, [Action.READ]),
        _grant(Resource.PRODUCTS, VALID_ACTIONS),
        _grant(Resource.CUSTOMERS, CRUD_ACTIONS + [Action.EXPORT]),
        _grant(Resource.ORDERS, CRUD_ACTIONS + [Action.EXPORT]),
        _grant(Resource.SUPPLIERS, CRUD_ACTIONS),
        _grant(Resource.PURCHASES, CRUD_ACTIONS),
        _grant(Resource.INVENTORY, CRUD_ACTIONS),
        _grant(Resource.PROJECTS, CRUD_ACTIONS),
        _grant(Resource.TASKS, CRUD_ACTIONS),
        _grant(Resource.EMPLOYEES, [Action.READ]),
        _grant(Resource.REPORTS, [Action.READ, Action.EXPORT]),
        _grant(Resource.DOCUMENTS, CRUD_ACTIONS),
    ],
    SystemRole.EMPLOYEE: [
        _grant(Resource.DASHBOARD, [Action.READ]),
        _grant(Resource.PRODUCTS, [Action.READ]),
        _grant(Resource.CUSTOMERS, [Action.READ]),
        _grant(Resource.ORDERS, [Action.CREATE, Action.READ, Action.UPDATE]),
        _grant(Resource.INVENTORY, [Action.READ]),
        _grant(Resource.PROJECTS, [Action.READ, Action.UPDATE]),
        _grant(Resource.TASKS, [Action.CREATE, Action.READ, Action.UPDATE]),
        _grant(Resource.DOCUMENTS, [Action.CREATE, Action.READ]),
    ],
    SystemRole.USER: [
        _grant(Resource.DASHBOARD, [Action.READ]),
        _grant(Resource.PRODUCTS, [Action.READ]),
        _grant(Resource.ORDERS, [Action.READ]),
    ],
}
