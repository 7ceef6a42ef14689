"""
RBAC (Role-Based Access Control) permission system
"""

from enum import Enum
from typing import Dict, Iterable, List, Set, Union


class UserRole(str, Enum):
    """User roles for RBAC"""
    SUPER_ADMIN = "super_admin"
    TENANT_ADMIN = "tenant_admin"
    ADMIN = "admin"
    EMPLOYEE = "employee"
    CLIENT = "client"
    CLIENT_USER = "client_user"


class Permission(str, Enum):
    """Permission definitions"""
    # Platform permissions
    MANAGE_ALL_TENANTS = "manage_all_tenants"
    MANAGE_TENANTS = "manage_tenants"
    VIEW_ALL_ANALYTICS = "view_all_analytics"
    MANAGE_SUBSCRIPTIONS = "manage_subscriptions"
    MANAGE_PAYMENTS = "manage_payments"

    # Tenant administration
    MANAGE_TENANT_USERS = "manage_tenant_users"
    MANAGE_USERS = "manage_users"
    MANAGE_TENANT_SETTINGS = "manage_tenant_settings"
    VIEW_TENANT_ANALYTICS = "view_tenant_analytics"

    # Lead permissions
    VIEW_LEADS = "view_leads"
    CREATE_LEADS = "create_leads"
    EDIT_LEADS = "edit_leads"
    DELETE_LEADS = "delete_leads"
    MANAGE_LEAD_SETTINGS = "manage_lead_settings"
    EXPORT_LEADS = "export_leads"

    # Invoice permissions
    VIEW_INVOICES = "view_invoices"
    CREATE_INVOICES = "create_invoices"
    EDIT_INVOICES = "edit_invoices"
    DELETE_INVOICES = "delete_invoices"
    VIEW_CUSTOMERS = "view_customers"
    MANAGE_CUSTOMERS = "manage_customers"
    MANAGE_INVOICE_SETTINGS = "manage_invoice_settings"

    # Dashboard
    VIEW_DASHBOARD = "view_dashboard"


_TENANT_ADMINISTRATION = {
    Permission.MANAGE_TENANT_USERS,
    Permission.MANAGE_USERS,
    Permission.MANAGE_TENANT_SETTINGS,
    Permission.VIEW_TENANT_ANALYTICS,
    Permission.VIEW_LEADS,
    Permission.CREATE_LEADS,
    Permission.EDIT_LEADS,
    Permission.DELETE_LEADS,
    Permission.MANAGE_LEAD_SETTINGS,
    Permission.EXPORT_LEADS,
    Permission.VIEW_INVOICES,
    Permission.CREATE_INVOICES,
    Permission.EDIT_INVOICES,
    Permission.DELETE_INVOICES,
    Permission.VIEW_CUSTOMERS,
    Permission.MANAGE_CUSTOMERS,
    Permission.MANAGE_INVOICE_SETTINGS,
    Permission.VIEW_DASHBOARD,
}


# Role permission mapping. Every role is listed; there is no fallback entry.
ROLE_PERMISSIONS: Dict[UserRole, Set[Permission]] = {
    UserRole.SUPER_ADMIN: {
        Permission.MANAGE_ALL_TENANTS,
        Permission.MANAGE_TENANTS,
        Permission.VIEW_ALL_ANALYTICS,
        Permission.MANAGE_SUBSCRIPTIONS,
        Permission.MANAGE_PAYMENTS,
        Permission.MANAGE_TENANT_USERS,
        Permission.MANAGE_USERS,
        Permission.VIEW_DASHBOARD,
    },
    UserRole.TENANT_ADMIN: set(_TENANT_ADMINISTRATION),
    UserRole.ADMIN: set(_TENANT_ADMINISTRATION),
    UserRole.EMPLOYEE: {
        # Employees work leads and invoices but cannot delete or configure
        Permission.VIEW_LEADS,
        Permission.CREATE_LEADS,
        Permission.EDIT_LEADS,
        Permission.EXPORT_LEADS,
        Permission.VIEW_INVOICES,
        Permission.CREATE_INVOICES,
        Permission.EDIT_INVOICES,
        Permission.VIEW_CUSTOMERS,
        Permission.MANAGE_CUSTOMERS,
        Permission.VIEW_DASHBOARD,
    },
    UserRole.CLIENT: {
        Permission.VIEW_LEADS,
        Permission.EDIT_LEADS,
        Permission.VIEW_DASHBOARD,
    },
    UserRole.CLIENT_USER: {
        Permission.VIEW_LEADS,
        Permission.EDIT_LEADS,
        Permission.VIEW_DASHBOARD,
    },
}


def get_permissions_for_role(role: Union[UserRole, str]) -> Set[Permission]:
    """Get the default permissions for a role.

    Raises ValueError for a string that does not name a role.
    """
    if not isinstance(role, UserRole):
        role = UserRole(role.lower())
    return set(ROLE_PERMISSIONS[role])


def _token(permission: Union[Permission, str]) -> str:
    # Enum members hash by name, so compare on the raw value
    return permission.value if isinstance(permission, Permission) else str(permission)


def serialize_permissions(permissions: Iterable[Union[Permission, str]]) -> List[str]:
    """Permission tokens as a sorted list of plain strings, ready for storage"""
    return sorted({Permission(_token(p)).value for p in permissions})


def has_permission(required_permission: Union[Permission, str], user_permissions: Iterable[Union[Permission, str]]) -> bool:
    """Check if user has required permission"""
    return _token(required_permission) in {_token(p) for p in user_permissions}
