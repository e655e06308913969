# Overview: Default permission sets for each workflow role.

DEFAULT_ROLE_PERMISSIONS = {
    "VENDOR": [
        "VIEW_SUBMISSIONS",
        "CREATE_SUBMISSION",
        "EDIT_OWN_SUBMISSION",
        "DELETE_OWN_SUBMISSION",
        "MANAGE_OWN_WORKERS",
    ],

    "REVIEWER": [
        "VIEW_SUBMISSIONS",
        "EDIT_SUBMISSION",
        "REVIEW_SUBMISSION",
        "MANAGE_WORKERS",
        "EXPORT_SUBMISSIONS",
        "VIEW_SCAN_HISTORY",
    ],

    "APPROVER": [
        "VIEW_SUBMISSIONS",
        "EDIT_SUBMISSION",
        "FINALIZE_SUBMISSION",
        "EXPORT_SUBMISSIONS",
        "VIEW_SCAN_HISTORY",
    ],

    "VERIFIER": [
        "VIEW_SUBMISSIONS",
        "VERIFY_QR",
        "VIEW_SCAN_HISTORY",
    ],

    # Read-only dashboard access
    "VISITOR": [
        "VIEW_SUBMISSIONS",
    ],

    "ADMIN": [
        "VIEW_SUBMISSIONS",
        "EDIT_SUBMISSION",
        "REVIEW_SUBMISSION",
        "FINALIZE_SUBMISSION",
        "MANAGE_WORKERS",
        "DELETE_SUBMISSION",
        "EXPORT_SUBMISSIONS",
        "VERIFY_QR",
        "VIEW_SCAN_HISTORY",
        "VIEW_USERS",
        "VIEW_AUDIT_LOG",
    ],

    "SUPER_ADMIN": [
        "VIEW_SUBMISSIONS",
        "EDIT_SUBMISSION",
        "REVIEW_SUBMISSION",
        "FINALIZE_SUBMISSION",
        "MANAGE_WORKERS",
        "DELETE_SUBMISSION",
        "EXPORT_SUBMISSIONS",
        "VERIFY_QR",
        "VIEW_SCAN_HISTORY",
        "VIEW_USERS",
        "CREATE_USER",
        "EDIT_USER",
        "DEACTIVATE_USER",
        "VIEW_AUDIT_LOG",
        "SYSTEM_ADMIN",
    ],
}
