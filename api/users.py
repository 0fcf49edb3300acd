from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, abort, g

from models import storage
from models.user import Role, User
from models.schemas.user import RoleUpdateSchema, UserOutSchema
from utils.decorators import roles_required

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__)

role_update_schema = RoleUpdateSchema()
user_out_schema = UserOutSchema()


@bp.patch("/users/<user_id>/role")
@roles_required([Role.ADMINISTRATOR])
def set_role(user_id: str):
    """
    Administrator-only: change a user's role.
    Takes effect on the user's next access token.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: path
         name: user_id
         type: string
         required: true
      -  in: body
         name: body
         schema:
           type: object
           properties:
             role: { type: string, enum: [ordinary, moderator, administrator] }
    responses:
      200: { description: OK }
      403: { description: Insufficient role }
      404: { description: Not found }
    """
    payload = request.get_json(silent=True) or {}
    data = role_update_schema.load(payload)

    user = storage.get(User, user_id)
    if not user:
        abort(404, description="User not found")
    user.role = Role(data["role"])
    user.save()
    logger.info("User %s set role of %s to %s", g.current_user.id, user.id, user.role.value)
    return jsonify({"success": True, "data": user_out_schema.dump(user)}), 200
