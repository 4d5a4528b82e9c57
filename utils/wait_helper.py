"""
等待與重試工具
所有等待都有上限，條件卡住時明確回報，絕不無限等待。

用法：
    from utils.wait_helper import wait_until, retry

    # 逾時回傳 False（Browser Session 的 wait_until 語意）
    arrived = wait_until(lambda: "profiles" in session.current_url(), timeout=30)

    # 指數退避重試：等 2s、4s …
    driver = retry(build_driver, max_attempts=3, delay=2.0, backoff=2,
                   exceptions=(WebDriverException,), label="[Session] 瀏覽器啟動")
"""

import time
from typing import Callable, TypeVar

from utils.logger import logger

T = TypeVar("T")


def wait_until(
    condition: Callable[[], object],
    timeout: float = 10,
    interval: float = 0.25,
    ignored: tuple = (),
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """
    輪詢 condition 直到回傳 truthy。

    Args:
        condition: 要輪詢的 callable
        timeout: 最長等待秒數
        interval: 輪詢間隔秒數
        ignored: 視為「尚未成立」的例外類型（例如 stale element）
        sleep: 等待函式，測試時可替換

    Returns:
        成立回傳 True，逾時回傳 False

    condition 拋出非 ignored 的例外時會直接往上拋，
    避免把真正的錯誤當成「還沒好」一直等。
    """
    end_time = time.monotonic() + timeout
    while True:
        try:
            if condition():
                return True
        except ignored:
            pass
        if time.monotonic() >= end_time:
            return False
        sleep(interval)


def retry(
    func: Callable[[], T],
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 1.0,
    exceptions: tuple = (Exception,),
    label: str = "[Retry] 執行",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    遇到指定例外時重試 func，第 n 次重試前等待 delay * backoff ** (n - 1) 秒。

    Raises:
        最後一次嘗試的例外
    """
    wait = delay
    for attempt in range(1, max_attempts + 1):
        try:
            return func()
        except exceptions as e:
            if attempt == max_attempts:
                raise
            logger.warning(
                f"{label}失敗 (第 {attempt}/{max_attempts} 次)，"
                f"{wait:g}s 後重試: {e}"
            )
            sleep(wait)
            wait *= backoff
