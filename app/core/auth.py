"""App Service authentication: client principal header parsing and role checks."""

from __future__ import annotations

import base64
import binascii
import json
import logging

from pydantic import ValidationError

from app.models.auth import ClientPrincipal

logger = logging.getLogger("portal_auth")

PRINCIPAL_HEADER = "x-ms-client-principal"


def parse_client_principal(raw: str | None) -> ClientPrincipal | None:
    """Decode the base64 JSON principal injected by the platform; malformed means anonymous."""
    if not raw:
        return None
    try:
        decoded = base64.b64decode(raw, validate=False).decode("utf-8")
        payload = json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Ignoring malformed client principal header: %s", e)
        return None

    # /.auth/me wraps the principal; the header carries it bare
    if isinstance(payload, dict) and isinstance(payload.get("clientPrincipal"), dict):
        payload = payload["clientPrincipal"]
    if not isinstance(payload, dict):
        return None

    try:
        return ClientPrincipal.model_validate(payload)
    except ValidationError as e:
        logger.warning("Ignoring client principal with invalid shape: %s", e.error_count())
        return None


def encode_client_principal(principal: ClientPrincipal) -> str:
    return base64.b64encode(json.dumps(principal.to_wire()).encode("utf-8")).decode("ascii")


def is_admin(principal: ClientPrincipal | None, admin_role: str) -> bool:
    return principal is not None and principal.has_role(admin_role)
