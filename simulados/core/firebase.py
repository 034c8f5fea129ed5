import logging
from functools import lru_cache

import firebase_admin
from firebase_admin import credentials, firestore_async

from simulados.core.config import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_firebase_app() -> firebase_admin.App:
    """Initialize the default Firebase app once, from a service account or ADC."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass
    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    if settings.FIREBASE_CREDENTIALS_PATH:
        cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
    else:
        cred = credentials.ApplicationDefault()
    app = firebase_admin.initialize_app(cred, options)
    logger.info(f"Firebase app initialized (project={app.project_id})")
    return app


@lru_cache()
def get_firestore_client():
    """Async Firestore client bound to the default Firebase app."""
    return firestore_async.client(get_firebase_app())
