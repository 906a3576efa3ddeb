"""HTTP client layer for the platform API."""

from .api import PlatformAPI
from .errors import ApiError, AuthenticationExpiredError, ErrorKind, NetworkError
from .http import ApiClient, Navigator, RecordingNavigator
from .tokens import FileTokenStore, TokenStore

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthenticationExpiredError",
    "ErrorKind",
    "FileTokenStore",
    "Navigator",
    "NetworkError",
    "PlatformAPI",
    "RecordingNavigator",
    "TokenStore",
]
