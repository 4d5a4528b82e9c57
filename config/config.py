"""
設定管理模組
統一管理瀏覽器、等待時間、重導上限等設定。
支援透過環境變數覆蓋預設值，方便 CI/CD 整合。
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

_SUPPORTED_BROWSERS = ("chrome", "firefox")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """掃描器全域設定"""

    # 瀏覽器
    BROWSER = os.getenv("BROWSER", "chrome").lower()
    HEADLESS = _env_bool("HEADLESS", "1")
    SELENIUM_REMOTE_URL = os.getenv("SELENIUM_REMOTE_URL", "")

    # 超時設定 (秒)
    PAGE_LOAD_TIMEOUT = float(os.getenv("PAGE_LOAD_TIMEOUT", "60"))
    NAVIGATION_TIMEOUT = float(os.getenv("NAVIGATION_TIMEOUT", "15"))
    LOGIN_TIMEOUT = float(os.getenv("LOGIN_TIMEOUT", "30"))

    # 每次 navigate / submit 之後的固定等待
    SETTLE_DELAY = float(os.getenv("SETTLE_DELAY", "1.0"))
    # selector 一次匹配多個節點時，重新查詢前的等待
    RESOLVE_SETTLE_DELAY = float(os.getenv("RESOLVE_SETTLE_DELAY", "0.25"))

    # 同一 URL pattern 最多觀察幾次，超過視為重導迴圈
    MAX_REDIRECT_OBSERVATIONS = int(os.getenv("MAX_REDIRECT_OBSERVATIONS", "3"))

    # text_snapshot 最多保留幾個字
    TEXT_SNAPSHOT_LIMIT = int(os.getenv("TEXT_SNAPSHOT_LIMIT", "80"))

    @classmethod
    def validate(cls, check_browser: bool = True) -> list[str]:
        """
        驗證目前設定。

        Args:
            check_browser: 是否檢查 BROWSER；不啟動瀏覽器時 (HTML 快照、
                呼叫端自備 session) 傳 False

        Returns:
            警告訊息列表

        Raises:
            InvalidConfigError: 設定值無效
        """
        # core 會 import Config，這裡延後載入
        from core.exceptions import InvalidConfigError

        warnings: list[str] = []

        if check_browser and cls.BROWSER not in _SUPPORTED_BROWSERS:
            raise InvalidConfigError(
                "BROWSER", cls.BROWSER, f"僅支援 {', '.join(_SUPPORTED_BROWSERS)}",
            )

        for key in ("PAGE_LOAD_TIMEOUT", "NAVIGATION_TIMEOUT", "LOGIN_TIMEOUT"):
            value = getattr(cls, key)
            if value <= 0:
                raise InvalidConfigError(key, str(value), "必須為正數")

        for key in ("SETTLE_DELAY", "RESOLVE_SETTLE_DELAY"):
            value = getattr(cls, key)
            if value < 0:
                raise InvalidConfigError(key, str(value), "不可為負數")

        if cls.MAX_REDIRECT_OBSERVATIONS < 1:
            raise InvalidConfigError(
                "MAX_REDIRECT_OBSERVATIONS", str(cls.MAX_REDIRECT_OBSERVATIONS),
                "至少為 1",
            )

        if cls.SETTLE_DELAY > cls.NAVIGATION_TIMEOUT:
            warnings.append("SETTLE_DELAY 大於 NAVIGATION_TIMEOUT")

        return warnings
