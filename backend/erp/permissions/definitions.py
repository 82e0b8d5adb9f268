# Overview: Resource and action vocabulary for grant-based permissions.
# A grant is {"resource": str, "actions": [str, ...]}; resource "*" matches anything.


class Action:
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
    IMPORT = "import"


VALID_ACTIONS = (
    Action.CREATE,
    Action.READ,
    Action.UPDATE,
    Action.DELETE,
    Action.EXPORT,
    Action.IMPORT,
)

CRUD_ACTIONS = [Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE]

WILDCARD = "*"


class Resource:
    DASHBOARD = "dashboard"
    PRODUCTS = "products"
    CUSTOMERS = "customers"
    ORDERS = "orders"
    SUPPLIERS = "suppliers"
    PURCHASES = "purchases"
    INVENTORY = "inventory"
    PROJECTS = "projects"
    TASKS = "tasks"
    EMPLOYEES = "employees"
    REPORTS = "reports"
    DOCUMENTS = "documents"
    INVOICES = "invoices"
    ROLES = "roles"
    USERS = "users"


RESOURCES = (
    Resource.DASHBOARD,
    Resource.PRODUCTS,
    Resource.CUSTOMERS,
    Resource.ORDERS,
    Resource.SUPPLIERS,
    Resource.PURCHASES,
    Resource.INVENTORY,
    Resource.PROJECTS,
    Resource.TASKS,
    Resource.EMPLOYEES,
    Resource.REPORTS,
    Resource.DOCUMENTS,
    Resource.INVOICES,
    Resource.ROLES,
    Resource.USERS,
)


class SystemRole:
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"
    USER = "user"


SYSTEM_ROLES = (SystemRole.ADMIN, SystemRole.MANAGER, SystemRole.EMPLOYEE, SystemRole.USER)
