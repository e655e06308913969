# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- SUBMISSIONS --

SUBMISSION_PERMISSIONS = [
    (
        "VIEW_SUBMISSIONS",
        "View Submissions",
        "List and open permit submissions visible to the role",
        PermissionCategory.SUBMISSIONS,
    ),
    (
        "CREATE_SUBMISSION",
        "Create Submission",
        "Submit a new permit request as a vendor",
        PermissionCategory.SUBMISSIONS,
    ),
    (
        "EDIT_OWN_SUBMISSION",
        "Edit Own Submission",
        "Edit vendor fields of own submissions before review",
        PermissionCategory.SUBMISSIONS,
    ),
    (
        "DELETE_OWN_SUBMISSION",
        "Delete Own Submission",
        "Delete own submissions before review",
        PermissionCategory.SUBMISSIONS,
    ),
    (
        "MANAGE_OWN_WORKERS",
        "Manage Own Workers",
        "Add and remove workers on own pending submissions",
        PermissionCategory.SUBMISSIONS,
    ),
    (
        "EXPORT_SUBMISSIONS",
        "Export Submissions",
        "Download the submission list as a spreadsheet",
        PermissionCategory.SUBMISSIONS,
    ),
]


# -- WORKFLOW --

WORKFLOW_PERMISSIONS = [
    (
        "EDIT_SUBMISSION",
        "Edit Submission",
        "Edit schedule and permit template fields of any pending submission",
        PermissionCategory.WORKFLOW,
    ),
    (
        "REVIEW_SUBMISSION",
        "Review Submission",
        "Set the review verdict and notes",
        PermissionCategory.WORKFLOW,
    ),
    (
        "FINALIZE_SUBMISSION",
        "Finalize Submission",
        "Approve or reject a reviewed submission and assign the permit number",
        PermissionCategory.WORKFLOW,
    ),
    (
        "MANAGE_WORKERS",
        "Manage Workers",
        "Add, replace and remove workers on any pending submission",
        PermissionCategory.WORKFLOW,
    ),
    (
        "DELETE_SUBMISSION",
        "Delete Submission",
        "Delete any submission that has not been approved",
        PermissionCategory.WORKFLOW,
    ),
]


# -- SCANS --

SCAN_PERMISSIONS = [
    (
        "VERIFY_QR",
        "Verify QR",
        "Scan permit QR codes at the gate",
        PermissionCategory.SCANS,
    ),
    (
        "VIEW_SCAN_HISTORY",
        "View Scan History",
        "View recorded gate scans",
        PermissionCategory.SCANS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "VIEW_USERS",
        "View Users",
        "View user accounts",
        PermissionCategory.USERS,
    ),
    (
        "CREATE_USER",
        "Create User",
        "Create user accounts of any role",
        PermissionCategory.USERS,
    ),
    (
        "EDIT_USER",
        "Edit User",
        "Edit user details and roles",
        PermissionCategory.USERS,
    ),
    (
        "DEACTIVATE_USER",
        "Deactivate User",
        "Deactivate user accounts and revoke their sessions",
        PermissionCategory.USERS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "VIEW_AUDIT_LOG",
        "View Audit Log",
        "View security events",
        PermissionCategory.SYSTEM,
    ),
    (
        "SYSTEM_ADMIN",
        "System Administration",
        "Full system administration",
        PermissionCategory.SYSTEM,
    ),
]


# Combined list of all permissions (definition order)
PERMISSION_DEFINITIONS = (
    SUBMISSION_PERMISSIONS
    + WORKFLOW_PERMISSIONS
    + SCAN_PERMISSIONS
    + USER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
