"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- Push gateway client (HTTP)
- Firestore client (alert record storage)
- Secret Manager client (secrets)
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from src.shell.push_client import PushClient
from src.shell.firestore_client import FirestoreClient, AlertStoreError
from src.shell.config_loader import load_config, load_config_from_env

__all__ = [
    "PushClient",
    "FirestoreClient",
    "AlertStoreError",
    "load_config",
    "load_config_from_env",
]
