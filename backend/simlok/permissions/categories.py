# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    SUBMISSIONS = "SUBMISSIONS"
    WORKFLOW = "WORKFLOW"
    SCANS = "SCANS"
    USERS = "USERS"
    SYSTEM = "SYSTEM"
