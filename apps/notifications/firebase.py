# apps/notifications/firebase.py
"""
Firebase Admin SDK bootstrap.

The app is initialized lazily from FIREBASE_CREDENTIALS_FILE (a service
account JSON) or, when no file is configured, from application default
credentials scoped to FIREBASE_PROJECT_ID.
"""
import logging
import firebase_admin
from firebase_admin import credentials, firestore
from django.conf import settings

logger = logging.getLogger(__name__)

_firebase_app = None


def firebase_configured():
    return bool(
        getattr(settings, 'FIREBASE_CREDENTIALS_FILE', '')
        or getattr(settings, 'FIREBASE_PROJECT_ID', '')
    )


def get_firebase_app():
    """Return the initialized Firebase app, or None when Firebase isn't configured."""
    global _firebase_app

    if _firebase_app is not None:
        return _firebase_app

    if not firebase_configured():
        logger.debug("[FIREBASE] not configured")
        return None

    try:
        _firebase_app = firebase_admin.get_app()
        return _firebase_app
    except ValueError:
        pass

    credentials_file = getattr(settings, 'FIREBASE_CREDENTIALS_FILE', '')
    project_id = getattr(settings, 'FIREBASE_PROJECT_ID', '') or None

    if credentials_file:
        cred = credentials.Certificate(credentials_file)
    else:
        cred = credentials.ApplicationDefault()

    options = {'projectId': project_id} if project_id else None
    _firebase_app = firebase_admin.initialize_app(cred, options)
    logger.info(f"[FIREBASE] initialized project={project_id or 'default'}")
    return _firebase_app


def get_firestore_client():
    """Firestore client bound to the Firebase app, or None when unavailable."""
    app = get_firebase_app()
    if app is None:
        return None
    return firestore.client(app=app)


def reset_firebase_app():
    """Forget the cached app (used by tests that swap settings)."""
    global _firebase_app
    _firebase_app = None
