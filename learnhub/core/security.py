import logging
from fastapi import HTTPException, status
from firebase_admin import auth
from firebase_admin.auth import InvalidIdTokenError, ExpiredIdTokenError, RevokedIdTokenError

from learnhub.core.firebase_config import get_firebase_app
from learnhub.schemas.user_schema import TokenData

logger = logging.getLogger(__name__)

# Checked in order: the expired and revoked errors subclass InvalidIdTokenError.
_TOKEN_ERROR_MESSAGES = (
    (ExpiredIdTokenError, "Authentication token has expired. Please log in again."),
    (RevokedIdTokenError, "Authentication token has been revoked. Please log in again."),
    (InvalidIdTokenError, "Invalid or expired authentication token."),
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_firebase_id_token(id_token: str) -> TokenData:
    """
    Verifies a Firebase ID token and returns the caller's identity.

    Bad, expired or revoked tokens and tokens without uid/email claims give a
    401. Any other Firebase Admin SDK failure gives a 500.
    """
    try:
        get_firebase_app()
        claims = auth.verify_id_token(id_token)
    except (InvalidIdTokenError, ExpiredIdTokenError, RevokedIdTokenError) as e:
        logger.warning(f"Rejected Firebase ID token: {e}")
        detail = next(msg for err_type, msg in _TOKEN_ERROR_MESSAGES if isinstance(e, err_type))
        raise _unauthorized(detail) from e
    except Exception as e:
        logger.error(f"Unexpected error during Firebase ID token verification: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not verify authentication token due to a server error.",
        ) from e

    if not claims.get("uid") or not claims.get("email"):
        logger.warning("Firebase ID token is missing 'uid' or 'email' claims.")
        raise _unauthorized("Invalid authentication credentials: Missing essential token claims.")

    logger.info(f"Firebase ID token verified for UID: {claims['uid']}")
    return TokenData(firebase_uid=claims["uid"], email=claims["email"], name=claims.get("name"))
