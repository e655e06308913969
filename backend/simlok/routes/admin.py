# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin routes for user management.

- GET    /api/admin/users              list users (VIEW_USERS)
- GET    /api/admin/users/<id>         one user with effective permissions
- POST   /api/admin/users              create a user with a role (CREATE_USER)
- PATCH  /api/admin/users/<id>         update profile, role or activation (EDIT_USER)
- DELETE /api/admin/users/<id>         deactivate and revoke sessions (DEACTIVATE_USER)
- GET    /api/admin/security-events    recent audit trail (VIEW_AUDIT_LOG)

Users are never hard-deleted: submissions and scans keep pointing at them.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import User, SecurityEvent, USER_ROLES
from ..services import auth_service, session_service, permission_service
from ..services.auth_service import PasswordValidationError, UserExistsError
from ..decorators import require_auth, require_permission


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

# Profile fields an admin may change through PATCH
EDITABLE_USER_FIELDS = ("officer_name", "vendor_name", "phone_number", "address")


@admin_bp.get("/users")
@require_auth
@require_permission("VIEW_USERS")
def list_users():
    """
    List users.

    Query params:
    - include_inactive: bool (default false) - include deactivated users
    - role: filter by role
    - search: email, officer or vendor name contains
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    role = request.args.get("role")
    search = request.args.get("search")

    query = db.session.query(User)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    if role:
        query = query.filter_by(role=role.strip().upper())
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            db.or_(
                User.email.ilike(term),
                User.officer_name.ilike(term),
                User.vendor_name.ilike(term),
            )
        )

    users = query.order_by(User.email).all()
    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)})


@admin_bp.get("/users/<int:user_id>")
@require_auth
@require_permission("VIEW_USERS")
def get_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404

    user_dict = user.to_dict()
    user_dict["permissions"] = sorted(permission_service.get_user_permissions(user))
    return jsonify({"user": user_dict})


@admin_bp.post("/users")
@require_auth
@require_permission("CREATE_USER")
def create_user():
    """
    Create a new user.

    Request body:
    - email: str (required)
    - password: str (required)
    - officer_name: str (required)
    - role: str (optional, default VENDOR)
    - vendor_name, phone_number, address: str (optional)
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")
        officer_name = data.get("officer_name")

        if not all([email, password, officer_name]):
            return jsonify({"error": "email, password, and officer_name required"}), 400

        user = auth_service.create_user(
            email=email,
            password=password,
            officer_name=officer_name,
            role=(data.get("role") or "VENDOR").strip().upper(),
            vendor_name=data.get("vendor_name"),
            phone_number=data.get("phone_number"),
            address=data.get("address"),
        )

        permission_service.log_security_event(
            user_id=g.current_user.id,
            event_type="USER_CREATED",
            success=True,
            resource="/api/admin/users",
            action=f"Created user: {user.email} ({user.role})",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent")
        )

        return jsonify({"user": user.to_dict(), "message": "User created successfully"}), 201

    except UserExistsError as e:
        return jsonify({"error": str(e)}), 409
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.patch("/users/<int:user_id>")
@require_auth
@require_permission("EDIT_USER")
def update_user(user_id: int):
    """
    Update user details.

    Request body (all optional):
    - email, officer_name, vendor_name, phone_number, address: str
    - role: str
    - is_active: bool (reactivation; use DELETE to deactivate)
    - password: str (revokes the user's sessions)
    """
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404

    data = request.get_json(silent=True) or {}
    revoke_reason = None

    try:
        if "email" in data:
            email = (data["email"] or "").strip().lower()
            if not email:
                return jsonify({"error": "email cannot be blank"}), 400
            existing = db.session.query(User).filter(
                User.email == email,
                User.id != user_id
            ).first()
            if existing:
                return jsonify({"error": "Email already in use"}), 409
            user.email = email

        for field in EDITABLE_USER_FIELDS:
            if field in data:
                setattr(user, field, data[field])
        if not (user.officer_name or "").strip():
            return jsonify({"error": "officer_name cannot be blank"}), 400

        if "role" in data:
            role = (data["role"] or "").strip().upper()
            if role not in USER_ROLES:
                return jsonify({"error": f"Invalid role: {data['role']}"}), 400
            if role != user.role:
                user.role = role
                revoke_reason = "Role changed by admin"

        if data.get("is_active") is True:
            user.is_active = True

        if data.get("password"):
            user.password_hash = auth_service.hash_password(data["password"])
            revoke_reason = "Password reset by admin"

        db.session.commit()
    except PasswordValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500

    # Force re-login so the new role or password takes effect
    if revoke_reason:
        session_service.revoke_all_user_sessions(user_id=user.id, reason=revoke_reason)

    return jsonify({"user": user.to_dict(), "message": "User updated successfully"})


@admin_bp.delete("/users/<int:user_id>")
@require_auth
@require_permission("DEACTIVATE_USER")
def deactivate_user(user_id: int):
    """
    Deactivate a user account.

    This will:
    1. Set is_active=False
    2. Revoke all active sessions for the user

    The user will be immediately logged out and unable to log back in.
    """
    user = db.session.get(User, user_id)

    if not user:
        return jsonify({"error": "User not found"}), 404

    if not user.is_active:
        return jsonify({"error": "User is already deactivated"}), 400

    # Prevent self-deactivation
    if user.id == g.current_user.id:
        return jsonify({"error": "Cannot deactivate your own account"}), 400

    user.is_active = False
    db.session.commit()

    revoked_count = session_service.revoke_all_user_sessions(
        user_id=user.id,
        reason="Account deactivated by admin"
    )

    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type="USER_DEACTIVATED",
        success=True,
        resource=f"/api/admin/users/{user_id}",
        action=f"Deactivated user: {user.email}",
        reason=f"Revoked {revoked_count} sessions",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent")
    )

    return jsonify({
        "message": "User deactivated successfully",
        "sessions_revoked": revoked_count
    })


@admin_bp.get("/security-events")
@require_auth
@require_permission("VIEW_AUDIT_LOG")
def list_security_events():
    """
    Recent security events, newest first.

    Query params:
    - event_type: filter by type (e.g. PERMISSION_DENIED, LOGIN_FAILED)
    - user_id: filter by user
    - limit: max rows (1..500, default 100)
    """
    limit = request.args.get("limit", 100, type=int)
    limit = min(max(limit, 1), 500)

    query = db.session.query(SecurityEvent)
    event_type = request.args.get("event_type")
    if event_type:
        query = query.filter_by(event_type=event_type.strip().upper())
    user_id = request.args.get("user_id", type=int)
    if user_id:
        query = query.filter_by(user_id=user_id)

    events = query.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()
    return jsonify({"items": [e.to_dict() for e in events], "count": len(events)})
