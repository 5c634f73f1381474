"""Firebase Admin SDK initialization and utilities."""

import asyncio
import json
import os

import firebase_admin
from firebase_admin import auth, credentials
from structlog import get_logger

from samagra.core.resilience import bounded

logger = get_logger(__name__)

_firebase_app: firebase_admin.App | None = None


def initialize_firebase(
    firebase_credentials_path: str | None = None, firebase_config_json: str | None = None
) -> None:
    """
    Initialize Firebase Admin SDK.

    Args:
        firebase_credentials_path: Optional path to service account JSON file.
        firebase_config_json: Optional raw JSON string of service account.

    Looks for Firebase credentials in order:
    1. firebase_config_json parameter
    2. firebase_credentials_path parameter
    3. Default application credentials
    """
    global _firebase_app

    if _firebase_app is not None:
        logger.info("Firebase already initialized")
        return

    try:
        cred = None

        if firebase_config_json:
            logger.info("Initializing Firebase with JSON string from environment")
            cred = credentials.Certificate(json.loads(firebase_config_json))

        elif firebase_credentials_path and os.path.exists(firebase_credentials_path):
            logger.info("Initializing Firebase with JSON file", path=firebase_credentials_path)
            cred = credentials.Certificate(firebase_credentials_path)

        if cred:
            _firebase_app = firebase_admin.initialize_app(cred)
        else:
            _firebase_app = firebase_admin.initialize_app()
            logger.info("Firebase initialized with default credentials")

    except Exception as e:
        logger.error("Failed to initialize Firebase", error=str(e))
        raise


def is_firebase_initialized() -> bool:
    """Whether the Admin SDK is ready for token checks and messaging."""
    return _firebase_app is not None


async def verify_firebase_token(id_token: str) -> dict:
    """
    Verify a Firebase ID token.

    Verification may fetch Google's signing certificates, so it runs in a
    worker thread under the external call timeout.

    Args:
        id_token: Firebase ID token from the client

    Returns:
        Decoded token containing uid and custom claims (``role``)

    Raises:
        ValueError: If token is invalid or expired
        DependencyTimeoutException: If verification did not finish in time
    """
    try:
        decoded_token = await bounded(
            asyncio.to_thread(auth.verify_id_token, id_token, clock_skew_seconds=10),
            "firebase_token_verification",
        )
    except auth.InvalidIdTokenError as e:
        logger.warning("Invalid or expired Firebase ID token", error=str(e))
        raise ValueError(f"Invalid Firebase ID token: {e!s}")
    except (ValueError, auth.UserDisabledError, auth.CertificateFetchError) as e:
        logger.warning("Firebase token verification failed", error=str(e))
        raise ValueError(f"Token verification failed: {e!s}")

    logger.debug("Firebase token verified", uid=decoded_token.get("uid"))
    return decoded_token
