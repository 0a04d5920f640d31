"""
Supabase Authentication Service

Verifies Supabase session tokens for the admin-only import endpoints and
provisions auth users for imported consultants.
"""

import os
import secrets
import jwt
from typing import Optional, Dict, Any, Tuple
from datetime import datetime, timezone
from functools import wraps
from flask import request, jsonify, g
from supabase import create_client, Client
import logging

from database import db_session_scope
from repositories import AdminRepository
from services.error_handler import RecordUpsertError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = 'sb-access-token'


class AdminSessionVerifier:
    """Verifies Supabase access tokens with the project's JWT secret."""

    def __init__(self, jwt_secret: Optional[str] = None):
        self.jwt_secret = jwt_secret or os.getenv('SUPABASE_JWT_SECRET')

    def verify_token(self, token: str) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """
        Verify a JWT token from Supabase

        Args:
            token: JWT access token

        Returns:
            Tuple of (is_valid, user_data)
        """
        if not self.jwt_secret:
            logger.error("SUPABASE_JWT_SECRET is not configured")
            return False, None

        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=["HS256"],
                options={"verify_aud": False}  # Supabase doesn't use audience
            )
        except jwt.InvalidTokenError as e:
            logger.warning(f"Token verification error: {str(e)}")
            return False, None

        exp = payload.get('exp', 0)
        if datetime.now(timezone.utc).timestamp() > exp:
            return False, None

        user_data = {
            "id": payload.get('sub'),
            "email": payload.get('email'),
            "role": payload.get('role'),
        }
        if not user_data["id"]:
            return False, None

        return True, user_data


def get_access_token() -> Optional[str]:
    """Read the session token from the Authorization header or the Supabase cookie."""
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header.split(' ', 1)[1].strip() or None
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


def admin_required(f):
    """
    Decorator to require a valid Supabase session belonging to an active admin

    Usage:
        @odoo_bp.route('/import-products', methods=['POST'])
        @admin_required
        def import_products():
            admin_id = g.current_admin["id"]
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_access_token()
        if not token:
            return jsonify({"error": "Unauthorized"}), 401

        is_valid, user_data = AdminSessionVerifier().verify_token(token)
        if not is_valid or not user_data:
            return jsonify({"error": "Invalid or expired token"}), 401

        with db_session_scope() as session:
            admin = AdminRepository(session).get_active(user_data["id"])
            if not admin:
                logger.warning(f"Non-admin user {user_data['id']} attempted an admin action")
                return jsonify({"error": "Forbidden: admin access required"}), 403
            g.current_admin = {"id": admin.id, "email": admin.email}

        g.current_user = user_data
        return f(*args, **kwargs)

    return decorated_function


def get_current_admin_id() -> Optional[str]:
    """Get the id of the admin making the current request."""
    admin = g.get('current_admin')
    return admin["id"] if admin else None


class SupabaseAccountProvisioner:
    """Creates (or finds) Supabase auth users for imported consultants."""

    def __init__(self, admin_client: Client):
        self.admin_client = admin_client

    @classmethod
    def from_env(cls) -> Optional['SupabaseAccountProvisioner']:
        """Service-role provisioner, or None when Supabase is not configured."""
        url = os.getenv('SUPABASE_URL')
        key = os.getenv('SUPABASE_SERVICE_ROLE_KEY')
        if not url or not key:
            logger.warning("Supabase service role not configured; consultants will be imported without auth users")
            return None
        return cls(create_client(url, key))

    def find_user_id(self, email: str) -> Optional[str]:
        users = self.admin_client.auth.admin.list_users()
        for user in users or []:
            if (user.email or '').lower() == email.lower():
                return user.id
        return None

    def find_or_create_user(self, email: str, full_name: str) -> str:
        """Return the auth user id for an email, creating the user if needed."""
        existing_id = self.find_user_id(email)
        if existing_id:
            logger.info(f"Using existing auth user for {email}")
            return existing_id

        response = self.admin_client.auth.admin.create_user({
            "email": email,
            "password": secrets.token_urlsafe(12),  # User resets it on first login
            "email_confirm": True,
            "user_metadata": {
                "full_name": full_name,
                "role": "consultant",
                "imported_from_odoo": True
            }
        })
        user = getattr(response, 'user', None)
        if not user:
            raise RecordUpsertError(f"Failed to create auth user for {email}")

        logger.info(f"Created auth user for {email}")
        return user.id
