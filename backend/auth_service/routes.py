"""
Authentication service route handlers.

Provides routes for:
- User signup
- User login
- Password update
- Profile retrieval (/me)
- Admin user listing

All JWT logic is delegated to `auth_service.utils`.
"""

import logging
from typing import Tuple, Dict, Any

import psycopg2.errors
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from flask import Blueprint, request, jsonify, Response

from backend.database.db_connection import get_db
from backend.auth_service.utils import create_token, verify_token_from_request
from backend.errors import StoreError, handle_app_error

auth_bp = Blueprint("auth", __name__)
auth_bp.register_error_handler(StoreError, handle_app_error)
ph = PasswordHasher()

PASSWORD_MIN_LENGTH = 6


# --- REQUEST LOGGING ---
@auth_bp.before_request
def before_request() -> None:
    """
    Log every incoming request method and path to the authentication service.
    Headers are not logged; they carry bearer tokens.
    """
    logging.info(f"[Auth] Incoming {request.method} {request.path}")


@auth_bp.after_request
def after_request(response: Response) -> Response:
    """
    Log the response status code for every request.

    Args:
        response (Response): The Flask response object.

    Returns:
        Response: The passed-through response object.
    """
    logging.info(f"[Auth] Response {response.status}")
    return response


# --- SIGNUP ---
@auth_bp.route("/signup", methods=["POST"])
def signup() -> Tuple[Response, int]:
    """
    Register a new user in the system.

    Expects a JSON body with:
    - email (str): Unique email address.
    - password (str): Minimum 6 characters.

    New accounts always get the `user` role.

    Returns:
        201: JSON with user_id and role.
        400: Missing fields or invalid input.
        409: Email already exists.
        500: Server-side error (hashing or database).
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    email: str = str(data.get("email") or "").strip().lower()
    password: str = data.get("password") or ""

    # Validate input
    if not email or not password:
        return jsonify({"error": "Email and password required"}), 400
    if "@" not in email:
        return jsonify({"error": "Invalid email address"}), 400
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        return jsonify({"error": f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"}), 400

    # Hash password using Argon2
    try:
        pw_hash = ph.hash(password)
    except Exception:
        logging.exception("[Auth] Password hashing failed")
        return jsonify({"error": "Password hashing failed"}), 500

    sql = """
        INSERT INTO users (email, password_hash, role)
        VALUES (%s, %s, 'user')
        RETURNING user_id, role;
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (email, pw_hash))
                user = cur.fetchone()
    except psycopg2.errors.UniqueViolation:
        return jsonify({"error": "Email already exists"}), 409
    except psycopg2.Error:
        logging.exception("[Auth] Database error during signup")
        return jsonify({"error": "Could not save user"}), 500

    return jsonify({
        "message": "User created successfully",
        "user_id": user["user_id"],
        "role": user["role"],
    }), 201


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Authenticate a user and return a JWT.

    Expects a JSON body with:
    - email (str)
    - password (str)

    Returns:
        200: JSON with user_id, role, email, and JWT token.
        400: Missing credentials.
        401: Invalid credentials (wrong password or email).
        500: Database error.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    email: str = str(data.get("email") or "").strip().lower()
    password: str = data.get("password") or ""

    if not email or not password or not isinstance(password, str):
        return jsonify({"error": "Email and password required"}), 400

    sql = "SELECT user_id, email, password_hash, COALESCE(role, 'user') AS role FROM users WHERE email = %s;"

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (email,))
                user = cur.fetchone()
    except psycopg2.Error:
        logging.exception("[Auth] Database error during login")
        return jsonify({"error": "Login failed"}), 500

    if not user:
        return jsonify({"error": "Invalid credentials"}), 401

    # Verify password against hash
    try:
        ph.verify(user["password_hash"], password)
    except (VerificationError, InvalidHashError):
        return jsonify({"error": "Invalid credentials"}), 401

    token = create_token(user["user_id"], user["role"], user["email"])

    return jsonify({
        "message": "Login successful",
        "user_id": user["user_id"],
        "role": user["role"],
        "email": user["email"],
        "token": token
    }), 200


# --- UPDATE PASSWORD ---
@auth_bp.route("/password", methods=["PUT"])
def update_password() -> Tuple[Response, int]:
    """
    Change the authenticated user's password.

    Expects JSON: { "new_password": str }

    Returns:
        200: Password updated.
        400: Missing or too-short password.
        401: Authentication failure.
        404: User no longer exists.
        500: Database error.
    """
    user_id, _, err, code = verify_token_from_request()
    if err:
        return err, code

    data: Dict[str, Any] = request.get_json(silent=True) or {}
    new_password = data.get("new_password") or data.get("newPassword")

    if not new_password or not isinstance(new_password, str):
        return jsonify({"error": "new_password is required"}), 400
    if len(new_password) < PASSWORD_MIN_LENGTH:
        return jsonify({"error": f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"}), 400

    pw_hash = ph.hash(new_password)
    sql = """
        UPDATE users
        SET password_hash = %s, updated_at = CURRENT_TIMESTAMP
        WHERE user_id = %s;
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (pw_hash, user_id))
                updated = cur.rowcount
    except psycopg2.Error:
        logging.exception(f"[Auth] Database error updating password for user {user_id}")
        return jsonify({"error": "Could not update password"}), 500

    if not updated:
        return jsonify({"error": "User not found"}), 404

    return jsonify({"message": "Password updated successfully"}), 200


# --- GET CURRENT USER ---
@auth_bp.route("/me", methods=["GET"])
def get_current_user() -> Tuple[Response, int]:
    """
    Retrieve the current user's profile.

    Requires Authorization header: Bearer <token>
    """
    user_id, _, err, code = verify_token_from_request()
    if err:
        return err, code

    sql = "SELECT user_id, email, role, created_at FROM users WHERE user_id = %s;"

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (user_id,))
                user = cur.fetchone()
    except psycopg2.Error:
        logging.exception("[Auth] Database error retrieving profile")
        return jsonify({"error": "Could not retrieve user"}), 500

    if not user:
        return jsonify({"error": "User not found"}), 404

    user = dict(user)
    if user.get("created_at"):
        user["created_at"] = user["created_at"].isoformat()
    return jsonify(user), 200


# --- LIST USERS (ADMIN ONLY) ---
@auth_bp.route("/users", methods=["GET"])
def list_users() -> Tuple[Response, int]:
    """
    Admin-only endpoint to list all users in the system.

    Returns:
        200: List of user objects.
        401/403: Unauthorized (not an admin).
        500: Database error.
    """
    _, _, err, code = verify_token_from_request(required_roles=["admin"])
    if err:
        return err, code

    sql = "SELECT user_id, email, role, created_at FROM users ORDER BY user_id ASC;"

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql)
                users = [dict(row) for row in cur.fetchall()]
    except psycopg2.Error:
        logging.exception("[Auth] Database error listing users")
        return jsonify({"error": "Failed to retrieve users"}), 500

    # Convert timestamps to ISO string for JSON serialization
    for u in users:
        if u.get("created_at"):
            u["created_at"] = u["created_at"].isoformat()

    return jsonify(users), 200
