# app/core/auth.py

from firebase_admin import auth as fb_auth

from horizon.app.config import get_firebase_app
from horizon.app.core.errors import AuthError, SESSION_EXPIRED
from horizon.app.schemas.principal import Principal


def decode_id_token(id_token: str) -> dict:
    """
    Verifies a Firebase ID token, including the revocation check so that
    tokens issued before a logout are rejected.
    """
    try:
        return fb_auth.verify_id_token(id_token, app=get_firebase_app(), check_revoked=True)
    except fb_auth.ExpiredIdTokenError:
        raise AuthError("Token expired", SESSION_EXPIRED)
    except fb_auth.RevokedIdTokenError:
        raise AuthError("Session revoked", SESSION_EXPIRED)
    except Exception as exc:
        raise AuthError(f"Invalid Firebase ID token: {exc}")


def token_to_principal(decoded: dict) -> Principal:
    """
    Builds a Principal from verified token claims.
    Roles are not read from claims; they live in the `user_roles` collection.
    """
    uid = decoded.get("uid") or decoded.get("user_id")
    if not uid:
        raise AuthError("Token missing uid.")

    return Principal(
        uid=uid,
        email=decoded.get("email"),
        display_name=decoded.get("name"),
        phone_number=decoded.get("phone_number"),
    )
