"""Shared Firestore client and local-file fallback helpers."""
from __future__ import annotations

import os

import firebase_admin
from firebase_admin import firestore

PROJECT_ENV = "TCA_FIRESTORE_PROJECT"

_firestore_client = None


def get_firestore_client():
    """Return a cached Firestore client instance.

    Uses application default credentials; TCA_FIRESTORE_PROJECT selects the
    project when the credentials do not imply one.
    """

    global _firestore_client
    if _firestore_client is not None:
        return _firestore_client

    if not firebase_admin._apps:
        project = os.getenv(PROJECT_ENV, "").strip()
        options = {"projectId": project} if project else None
        firebase_admin.initialize_app(options=options)
    _firestore_client = firestore.client()
    return _firestore_client


def file_fallback_forced(env_var: str) -> bool:
    """True when ``env_var`` (one of the *_FORCE_FILE switches) is set to 1."""
    return os.getenv(env_var, "").strip() == "1"


def owner_key(user_id: str) -> str:
    """Filesystem-safe form of an owner id (an email address)."""
    return user_id.replace("@", "_at_").replace(".", "_").replace("/", "_")
