"""
自訂 Exception 體系

統一的錯誤處理階層，讓每種失敗都有明確的分類與訊息。
上層可以 catch 大類別 (如 NavigationError)，
也可以精準 catch 子類別 (如 LoginTimeoutError)。

每個例外都帶有 reason (FailureReason)，
GenerationResult 以 reason 列表回報失敗原因。

Exception 樹：
    PomScannerError
    ├── NavigationError                 (整個 run 中止)
    │   ├── NavigationFailure
    │   ├── NavigationTimeoutError
    │   ├── LoginFieldNotFoundError
    │   ├── LoginTimeoutError
    │   └── UnexpectedRedirectLoopError
    ├── ScanError                       (單一元素，降級處理)
    │   ├── ElementVanishedError
    │   └── SelectorCollisionUnresolvedError
    └── ConfigError
        ├── InvalidConfigError
        └── InvalidSelectorError
"""

from __future__ import annotations

from enum import Enum


class FailureReason(Enum):
    """對外回報用的失敗類型標籤"""
    NAVIGATION_FAILURE = "NavigationFailure"
    NAVIGATION_TIMEOUT = "NavigationTimeout"
    LOGIN_FIELD_NOT_FOUND = "LoginFieldNotFound"
    LOGIN_TIMEOUT = "LoginTimeout"
    UNEXPECTED_REDIRECT_LOOP = "UnexpectedRedirectLoop"
    ELEMENT_VANISHED = "ElementVanished"
    SELECTOR_COLLISION_UNRESOLVED = "SelectorCollisionUnresolved"
    INVALID_CONFIG = "InvalidConfig"


class PomScannerError(Exception):
    """所有例外的基底，catch 這個就能攔截一切掃描錯誤"""

    reason: FailureReason = FailureReason.NAVIGATION_FAILURE

    def __init__(self, message: str = "", context: dict | None = None):
        self.context = context or {}
        super().__init__(message)


# ── Navigation 相關（致命）──

class NavigationError(PomScannerError):
    """導航失敗，頁面無法到達就不產生任何 catalog"""


class NavigationFailure(NavigationError):
    """一般導航失敗（被導向登入頁但沒有登入設定等）"""

    reason = FailureReason.NAVIGATION_FAILURE

    def __init__(self, url: str = "", detail: str = ""):
        msg = f"無法導航到: {url}" if url else "導航失敗"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg, context={"url": url, "detail": detail})


class NavigationTimeoutError(NavigationError):
    """頁面在時限內沒有穩定"""

    reason = FailureReason.NAVIGATION_TIMEOUT

    def __init__(self, url: str = "", timeout: float = 0):
        msg = f"導航逾時: {url}"
        if timeout:
            msg += f" (等待 {timeout:g}s)"
        super().__init__(msg, context={"url": url, "timeout": timeout})


class LoginFieldNotFoundError(NavigationError):
    """登入頁找不到帳號/密碼/送出元素"""

    reason = FailureReason.LOGIN_FIELD_NOT_FOUND

    def __init__(self, field: str = "", tried: list[str] | None = None, detail: str = ""):
        self.tried = list(tried or [])
        msg = f"找不到登入欄位: {field}"
        if self.tried:
            msg += f" (已嘗試 {len(self.tried)} 個 selector)"
        if detail:
            msg += f": {detail}"
        super().__init__(msg, context={"field": field, "tried": self.tried})


class LoginTimeoutError(NavigationError):
    """登入後沒有在時限內到達預期 URL"""

    reason = FailureReason.LOGIN_TIMEOUT

    def __init__(self, expected: str = "", current_url: str = "", timeout: float = 0):
        msg = f"登入逾時: 預期 '{expected}'，目前 URL '{current_url}'"
        if timeout:
            msg += f" (等待 {timeout:g}s)"
        super().__init__(
            msg,
            context={"expected": expected, "current_url": current_url, "timeout": timeout},
        )


class UnexpectedRedirectLoopError(NavigationError):
    """同一個 URL pattern 重複出現超過上限"""

    reason = FailureReason.UNEXPECTED_REDIRECT_LOOP

    def __init__(self, pattern: str = "", observations: int = 0):
        super().__init__(
            f"偵測到重導迴圈: {pattern} 出現 {observations} 次",
            context={"pattern": pattern, "observations": observations},
        )


# ── Scan 相關（單一元素，降級處理）──

class ScanError(PomScannerError):
    """元素層級錯誤，不會中止整個掃描"""


class ElementVanishedError(ScanError):
    """列舉之後、讀取之前元素已從 DOM 消失"""

    reason = FailureReason.ELEMENT_VANISHED

    def __init__(self, detail: str = ""):
        msg = "元素已消失"
        if detail:
            msg += f": {detail}"
        super().__init__(msg, context={"detail": detail})


class SelectorCollisionUnresolvedError(ScanError):
    """所有 selector 策略都衝突，改用 document order 編號"""

    reason = FailureReason.SELECTOR_COLLISION_UNRESOLVED

    def __init__(self, selector: str = "", index: int = 0):
        super().__init__(
            f"selector 衝突無法解決，改用編號: {selector} >> nth={index}",
            context={"selector": selector, "index": index},
        )


# ── Config 相關 ──

class ConfigError(PomScannerError):
    """設定相關錯誤"""

    reason = FailureReason.INVALID_CONFIG


class InvalidConfigError(ConfigError):
    """設定值無效"""

    def __init__(self, key: str = "", value: str = "", reason: str = ""):
        msg = f"設定值無效: {key}={value}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg, context={"key": key, "value": value})


class InvalidSelectorError(ConfigError):
    """CSS selector 語法錯誤（通常來自使用者給的登入欄位提示）"""

    def __init__(self, selector: str = "", detail: str = ""):
        msg = f"無效的 CSS selector: {selector}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg, context={"selector": selector, "detail": detail})
