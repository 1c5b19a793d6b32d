"""
Admin routes proxying the Supabase admin API.

Callers authenticate with either the shared ``X-Admin-Secret`` header or a
Supabase access token (``Authorization: Bearer ...``) of a user whose profile
role is ``admin``.
"""
import hmac
from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request

from larga.services.supabase_service import supabase_service

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def _check_admin_secret(provided):
    server_secret = current_app.config.get('ADMIN_SECRET')
    if not server_secret:
        return jsonify({'error': 'ADMIN_SECRET not configured on server'}), 500
    if not provided or not hmac.compare_digest(provided.encode('utf-8'), server_secret.encode('utf-8')):
        return jsonify({'error': 'Unauthorized: invalid admin secret'}), 401
    g.admin_user = None
    return None


def _check_admin_token(token):
    user = supabase_service.get_user_for_token(token)
    if not user or not user.get('id'):
        return jsonify({'error': 'Unauthorized: invalid access token'}), 401

    profile = supabase_service.get_profile(user['id'])
    role = str((profile or {}).get('role') or '').lower()
    if role != 'admin':
        return jsonify({'error': 'Forbidden: admin role required'}), 403
    g.admin_user = user
    return None


def require_admin(view):
    """Reject the request unless it carries admin credentials."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        provided_secret = request.headers.get('X-Admin-Secret')
        token = _bearer_token()
        if provided_secret is None and token:
            failure = _check_admin_token(token)
        else:
            failure = _check_admin_secret(provided_secret)
        if failure is not None:
            return failure
        return view(*args, **kwargs)
    return wrapper


def _int_arg(name, default, minimum, maximum):
    try:
        value = int(request.args.get(name, default))
    except (TypeError, ValueError):
        value = default
    return max(minimum, min(maximum, value))


@admin_bp.route('/users')
@require_admin
def list_users():
    """List auth users (one page)."""
    page = _int_arg('page', 1, 1, 10_000)
    per_page = _int_arg(
        'per_page',
        current_app.config.get('ADMIN_USERS_PER_PAGE', 50),
        1,
        current_app.config.get('ADMIN_USERS_MAX_PER_PAGE', 1000),
    )
    users = supabase_service.list_users(page=page, per_page=per_page)
    return jsonify({'count': len(users), 'page': page, 'per_page': per_page, 'users': users}), 200


@admin_bp.route('/users/<user_id>')
@require_admin
def get_user(user_id):
    """Fetch one auth user by id."""
    user = supabase_service.get_user(user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    return jsonify({'user': user}), 200


@admin_bp.route('/stats')
@require_admin
def stats():
    """Dashboard counters over the profiles table."""
    profiles = supabase_service.list_profiles()
    verified = sum(1 for p in profiles if p.get('is_verified') is True)
    return jsonify({
        'total_users': len(profiles),
        'active_users': sum(1 for p in profiles if p.get('is_active') is not False),
        'verified_ids': verified,
        'pending_ids': len(profiles) - verified,
        'by_role': _count_roles(profiles),
    }), 200


def _count_roles(profiles):
    counts = {}
    for profile in profiles:
        role = str(profile.get('role') or 'unknown').lower()
        counts[role] = counts.get(role, 0) + 1
    return counts
