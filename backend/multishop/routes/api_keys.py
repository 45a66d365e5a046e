# Overview: Flask API routes for API key issuance and revocation.

from flask import Blueprint, request

from ..decorators import client_context, current_principal, require_roles, require_token
from ..errors import success_response
from ..permissions import USER_ADMIN_ROLES, scope_catalogue
from ..services import access_service, api_key_service
from ..validation import json_object


api_keys_bp = Blueprint("api_keys", __name__, url_prefix="/api/api-keys")


@api_keys_bp.get("")
@require_token
@require_roles(USER_ADMIN_ROLES)
def list_api_keys():
    keys = api_key_service.list_api_keys(current_principal().id)
    return success_response([key.to_dict() for key in keys])


@api_keys_bp.get("/scopes")
@require_token
@require_roles(USER_ADMIN_ROLES)
def list_scopes():
    return success_response(scope_catalogue())


@api_keys_bp.post("")
@require_token
@require_roles(USER_ADMIN_ROLES)
def create_api_key():
    """
    Create a key for the calling user.

    The plaintext key is in the response exactly once; store it now.
    """
    principal = current_principal()
    data = json_object(request)
    api_key, plaintext = api_key_service.create_api_key(
        principal.id,
        data.get("name"),
        data.get("scopes"),
        data.get("expires_in_days"),
    )
    access_service.log_security_event(
        principal,
        event_type="API_KEY_CREATED",
        success=True,
        reason=f"Key {api_key.key_prefix} scopes={','.join(api_key.scopes)}",
        **client_context(),
    )

    payload = api_key.to_dict()
    payload["key"] = plaintext
    return success_response(payload, "API key created. Store it securely; it will not be shown again.", 201)


@api_keys_bp.delete("/<id:key_id>")
@require_token
@require_roles(USER_ADMIN_ROLES)
def revoke_api_key(key_id: int):
    principal = current_principal()
    api_key = api_key_service.revoke_api_key(key_id, user_id=principal.id)
    access_service.log_security_event(
        principal,
        event_type="API_KEY_REVOKED",
        success=True,
        reason=f"Key {api_key.key_prefix}",
        **client_context(),
    )
    return success_response(api_key.to_dict(), "API key revoked")
