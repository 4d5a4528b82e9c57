"""
core：瀏覽器 session 與例外體系

統一匯出核心元件，方便外部 import。

用法：
    from core import SeleniumSession, HtmlSnapshotSession
    from core import NavigationError, LoginTimeoutError
"""

from core.browser_session import BrowserSession, SeleniumSession
from core.exceptions import (
    ConfigError,
    ElementVanishedError,
    FailureReason,
    InvalidConfigError,
    InvalidSelectorError,
    LoginFieldNotFoundError,
    LoginTimeoutError,
    NavigationError,
    NavigationFailure,
    NavigationTimeoutError,
    PomScannerError,
    ScanError,
    SelectorCollisionUnresolvedError,
    UnexpectedRedirectLoopError,
)
from core.html_session import HtmlSnapshotSession

__all__ = [
    # Session
    "BrowserSession",
    "SeleniumSession",
    "HtmlSnapshotSession",
    # Exceptions
    "FailureReason",
    "PomScannerError",
    "NavigationError",
    "NavigationFailure",
    "NavigationTimeoutError",
    "LoginFieldNotFoundError",
    "LoginTimeoutError",
    "UnexpectedRedirectLoopError",
    "ScanError",
    "ElementVanishedError",
    "SelectorCollisionUnresolvedError",
    "ConfigError",
    "InvalidConfigError",
    "InvalidSelectorError",
]
