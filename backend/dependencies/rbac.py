"""
Role checks for the wholesaler areas, and the admin secret guard.
Role checks run after bearer authentication and hand the principal on to the route.
"""
from fastapi import Depends, HTTPException, Request, Header
from config import ADMIN_SECRET
from models import Role
from routers.auth.auth import get_current_user
from utils.errors import Forbidden, Internal
from typing import Optional
import secrets
import logging

logger = logging.getLogger(__name__)

ROLE_GRANTS = {
    Role.WHOLESALER.value: {
        'wholesaler/product': {'read', 'write', 'delete'},
        'wholesaler/order': {'read', 'write'},
    },
}

ACTIONS_BY_METHOD = {
    'GET': 'read',
    'HEAD': 'read',
    'POST': 'write',
    'PUT': 'write',
    'PATCH': 'write',
    'DELETE': 'delete',
}


def resource_for_path(path: str) -> str:
    """/api/wholesaler/product/<id> -> wholesaler/product"""
    segments = [segment for segment in path.split('/') if segment and segment != 'api']
    if not segments:
        return ''
    if segments[0] == 'wholesaler' and len(segments) > 1 and segments[1] in ('product', 'order'):
        return f'wholesaler/{segments[1]}'
    return segments[0]


def action_for_method(method: str) -> str:
    return ACTIONS_BY_METHOD.get(method.upper(), 'read')


def is_allowed(role: str, resource: str, action: str) -> bool:
    grants = ROLE_GRANTS.get(role, {})
    # a grant on the parent area covers its sub-resources
    for candidate in (resource, resource.split('/')[0]):
        if candidate in grants:
            return action in grants[candidate]
    return False


def require_role_access(resource: Optional[str] = None, action: Optional[str] = None):
    """
    Build a dependency that lets the request through only when the caller's
    role holds `action` on `resource`. Both default to what the request path
    and method imply.
    """
    def check_access(request: Request, current_user: dict = Depends(get_current_user)):
        try:
            role = current_user.get('role')
            resource_name = resource or resource_for_path(request.url.path)
            required_action = action or action_for_method(request.method)

            if not is_allowed(role, resource_name, required_action):
                logger.warning(f"Access denied: {role} cannot {required_action} {resource_name}")
                raise Forbidden(f"Access denied. {role} role cannot {required_action} {resource_name}")

            return current_user

        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Role check failed: {str(e)}")
            raise Internal("Authorization check failed")

    return check_access


require_product_access = require_role_access("wholesaler/product")
require_order_access = require_role_access("wholesaler/order")


def require_admin(x_admin_secret: Optional[str] = Header(None)):
    """Admin routes need the shared secret; with none configured they stay closed"""
    if not ADMIN_SECRET or not x_admin_secret or not secrets.compare_digest(x_admin_secret, ADMIN_SECRET):
        logger.warning("Admin access denied")
        raise Forbidden("Admin access required")
    return True
