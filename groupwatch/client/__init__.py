"""Client-side access to the Group Watch API and the polling sync driver."""

from groupwatch.client.api import GroupWatchApiClient
from groupwatch.client.config import ClientSettings, get_client_settings
from groupwatch.client.sync import ComposeBuffer, GroupSyncDriver, GroupViewState, PollingTimer

__all__ = [
    "ClientSettings",
    "ComposeBuffer",
    "GroupSyncDriver",
    "GroupViewState",
    "GroupWatchApiClient",
    "PollingTimer",
    "get_client_settings",
]
