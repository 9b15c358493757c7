"""Wallet client: device storage, auth client and dashboard controller."""

from sentechain.client.auth_client import AuthClient
from sentechain.client.contacts import Contact, ContactBook
from sentechain.client.dashboard import DashboardController, DashboardState
from sentechain.client.local_storage import LocalStorage
from sentechain.client.preferences import PreferenceFlags, Preferences
from sentechain.client.session import SessionStore, UserSession

__all__ = [
    "AuthClient",
    "Contact",
    "ContactBook",
    "DashboardController",
    "DashboardState",
    "LocalStorage",
    "PreferenceFlags",
    "Preferences",
    "SessionStore",
    "UserSession",
]
