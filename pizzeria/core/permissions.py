"""
Role → capability lookup.

Capabilities are plain string tags checked by the API layer before a
state-changing action. The table is exposed as a pure function so routes
receive it through a dependency and tests can substitute their own policy.
"""

from typing import Callable, FrozenSet

from pizzeria.models import Role


WILDCARD = "*"

CREATE_ORDER = "create_order"
EDIT_ORDER = "edit_order"
CANCEL_ORDER = "cancel_order"
VIEW_ORDERS = "view_orders"
VIEW_REPORTS = "view_reports"
MANAGE_PRODUCTS = "manage_products"
MANAGE_USERS = "manage_users"
UPDATE_PREPARATION_STATUS = "update_preparation_status"
UPDATE_DELIVERY_STATUS = "update_delivery_status"

ROLE_CAPABILITIES: dict[Role, FrozenSet[str]] = {
    Role.ADMIN: frozenset({WILDCARD}),
    Role.MANAGER: frozenset({
        CREATE_ORDER,
        EDIT_ORDER,
        CANCEL_ORDER,
        VIEW_REPORTS,
        MANAGE_PRODUCTS,
        MANAGE_USERS,
    }),
    Role.COUNTER_STAFF: frozenset({CREATE_ORDER, EDIT_ORDER, VIEW_ORDERS}),
    Role.COOK: frozenset({VIEW_ORDERS, UPDATE_PREPARATION_STATUS}),
    Role.DRIVER: frozenset({VIEW_ORDERS, UPDATE_DELIVERY_STATUS}),
}

# A policy answers "which capabilities does this role carry?"
PermissionPolicy = Callable[[Role], FrozenSet[str]]


def capabilities_for(role: Role) -> FrozenSet[str]:
    """Return the capability tags granted to ``role`` (empty for unknown roles)."""
    try:
        return ROLE_CAPABILITIES[Role(role)]
    except ValueError:
        return frozenset()


def has_capability(
    role: Role,
    capability: str,
    policy: PermissionPolicy = capabilities_for,
) -> bool:
    granted = policy(role)
    return WILDCARD in granted or capability in granted
