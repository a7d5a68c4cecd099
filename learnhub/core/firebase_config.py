import firebase_admin
from firebase_admin import credentials
import os
import logging

from learnhub.core.config import settings

logger = logging.getLogger(__name__)


def initialize_firebase_app() -> firebase_admin.App:
    """
    Initializes the Firebase Admin SDK from the service account file named by
    GOOGLE_APPLICATION_CREDENTIALS. Firebase only proves who the caller is;
    roles and account status live in our own users table.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass  # not initialized yet

    cred_path = settings.GOOGLE_APPLICATION_CREDENTIALS
    if not cred_path:
        raise ValueError("GOOGLE_APPLICATION_CREDENTIALS is not set; cannot verify ID tokens.")
    if not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase service account key file not found at path: {cred_path}")

    try:
        options = {"storageBucket": settings.FIREBASE_STORAGE_BUCKET} if settings.FIREBASE_STORAGE_BUCKET else None
        app = firebase_admin.initialize_app(credentials.Certificate(cred_path), options)
    except (ValueError, OSError) as e:
        logger.error(f"Error initializing Firebase Admin SDK from {cred_path}: {e}", exc_info=True)
        raise
    logger.info(f"Firebase Admin SDK initialized (app '{app.name}').")
    return app


get_firebase_app = initialize_firebase_app
