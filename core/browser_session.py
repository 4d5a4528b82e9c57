"""
Browser Session Handle

掃描器與瀏覽器之間唯一的介面。Navigator 與 Scanner 只透過
BrowserSession 的方法操作頁面，不直接碰 WebDriver。

實作：
- SeleniumSession      真實瀏覽器 (Chrome / Firefox，本機或 Selenium Grid)
- HtmlSnapshotSession  靜態 HTML（見 core/html_session.py）

用法：
    with SeleniumSession() as session:
        session.navigate("https://example.com/home")
        buttons = session.find_all("button")
"""

from __future__ import annotations

import time
from typing import Any, Callable, Protocol, runtime_checkable

from selenium import webdriver
from selenium.common.exceptions import (
    InvalidSelectorException,
    NoSuchElementException,
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import WebDriverWait

from config.config import Config
from core.exceptions import (
    ElementVanishedError,
    InvalidSelectorError,
    NavigationFailure,
    NavigationTimeoutError,
)
from utils.logger import logger
from utils.wait_helper import retry, wait_until


@runtime_checkable
class BrowserSession(Protocol):
    """瀏覽器能力介面，node 的型別由實作決定"""

    def navigate(self, url: str) -> None: ...

    def find_all(self, query: str) -> list[Any]: ...

    def read_attribute(self, node: Any, name: str) -> str | None: ...

    def text(self, node: Any) -> str: ...

    def click(self, node: Any) -> None: ...

    def type(self, node: Any, value: str) -> None: ...

    def current_url(self) -> str: ...

    def title(self) -> str: ...

    def wait_until(self, predicate: Callable[[], object], timeout: float) -> bool: ...

    def tag_name(self, node: Any) -> str: ...

    def structural_path(self, node: Any) -> str: ...

    def same_node(self, a: Any, b: Any) -> bool: ...

    def close(self) -> None: ...


# tag + nth-of-type 的 CSS 路徑，與 HtmlSnapshotSession 的演算法一致
_STRUCTURAL_PATH_JS = """
var el = arguments[0], parts = [];
while (el && el.nodeType === 1) {
    var tag = el.tagName.toLowerCase();
    if (tag === 'html') { parts.unshift('html'); break; }
    var i = 1, sib = el.previousElementSibling;
    while (sib) {
        if (sib.tagName === el.tagName) { i++; }
        sib = sib.previousElementSibling;
    }
    parts.unshift(tag + ':nth-of-type(' + i + ')');
    el = el.parentElement;
}
return parts.join(' > ');
"""


class SeleniumSession:
    """
    以 Selenium WebDriver 實作的 BrowserSession

    一個 session 對應一個瀏覽器，open() 之後才可使用，
    用完必須 close()（或用 with 區塊）。
    """

    def __init__(
        self,
        browser: str | None = None,
        headless: bool | None = None,
        remote_url: str | None = None,
        max_retries: int = 3,
        retry_delay: float = 2.0,
    ):
        self.browser = (browser or Config.BROWSER).lower()
        self.headless = Config.HEADLESS if headless is None else headless
        self.remote_url = Config.SELENIUM_REMOTE_URL if remote_url is None else remote_url
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._driver = None

    # ── 生命週期 ──

    def open(self) -> "SeleniumSession":
        """建立 WebDriver，連線失敗時以指數退避重試"""
        try:
            self._driver = retry(
                self._build_driver,
                max_attempts=self.max_retries,
                delay=self.retry_delay,
                backoff=2,
                exceptions=(WebDriverException,),
                label="[Session] 瀏覽器啟動",
                sleep=time.sleep,
            )
        except WebDriverException as e:
            raise NavigationFailure(
                self.remote_url or self.browser, f"無法啟動瀏覽器: {e}",
            ) from e

        self._driver.set_page_load_timeout(Config.PAGE_LOAD_TIMEOUT)
        target = self.remote_url or "local"
        logger.info(f"[Session] 瀏覽器已啟動: {self.browser} -> {target}")
        return self

    def close(self) -> None:
        """安全關閉瀏覽器，可重複呼叫"""
        if self._driver is not None:
            try:
                self._driver.quit()
            except WebDriverException as e:
                logger.warning(f"[Session] 關閉瀏覽器時發生錯誤: {e}")
            self._driver = None
            logger.info("[Session] 瀏覽器已關閉")

    def __enter__(self) -> "SeleniumSession":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _build_driver(self):
        if self.browser == "firefox":
            options = webdriver.FirefoxOptions()
            if self.headless:
                options.add_argument("-headless")
        elif self.browser == "chrome":
            options = webdriver.ChromeOptions()
            if self.headless:
                options.add_argument("--headless=new")
            options.add_argument("--no-sandbox")
            options.add_argument("--disable-dev-shm-usage")
        else:
            raise ValueError(f"不支援的瀏覽器: {self.browser}")

        if self.remote_url:
            return webdriver.Remote(command_executor=self.remote_url, options=options)
        if self.browser == "firefox":
            return webdriver.Firefox(options=options)
        return webdriver.Chrome(options=options)

    @property
    def driver(self):
        if self._driver is None:
            raise NavigationFailure(detail="瀏覽器尚未啟動，請先呼叫 open()")
        return self._driver

    # ── 導航 ──

    def navigate(self, url: str) -> None:
        """前往 url 並等待 document.readyState 為 complete"""
        timeout = Config.NAVIGATION_TIMEOUT
        try:
            self.driver.get(url)
            WebDriverWait(self.driver, timeout).until(
                lambda d: d.execute_script("return document.readyState") == "complete"
            )
        except TimeoutException as e:
            raise NavigationTimeoutError(url, timeout) from e
        except WebDriverException as e:
            raise NavigationFailure(url, e.msg or str(e)) from e

    def current_url(self) -> str:
        return self.driver.current_url

    def title(self) -> str:
        return self.driver.title

    # ── 查詢 ──

    def find_all(self, query: str) -> list:
        try:
            return self.driver.find_elements(By.CSS_SELECTOR, query)
        except InvalidSelectorException as e:
            raise InvalidSelectorError(query, e.msg or "") from e

    def read_attribute(self, node, name: str) -> str | None:
        try:
            return node.get_dom_attribute(name)
        except (StaleElementReferenceException, NoSuchElementException) as e:
            raise ElementVanishedError(f"讀取屬性 {name} 失敗") from e

    def text(self, node) -> str:
        try:
            return node.text
        except (StaleElementReferenceException, NoSuchElementException) as e:
            raise ElementVanishedError("讀取文字失敗") from e

    def tag_name(self, node) -> str:
        try:
            return node.tag_name.lower()
        except (StaleElementReferenceException, NoSuchElementException) as e:
            raise ElementVanishedError("讀取 tag 失敗") from e

    def structural_path(self, node) -> str:
        try:
            return self.driver.execute_script(_STRUCTURAL_PATH_JS, node)
        except (StaleElementReferenceException, NoSuchElementException) as e:
            raise ElementVanishedError("計算結構路徑失敗") from e

    def same_node(self, a, b) -> bool:
        # WebElement 以遠端 element id 比較
        return a == b

    # ── 操作 ──

    def click(self, node) -> None:
        try:
            node.click()
        except (StaleElementReferenceException, NoSuchElementException) as e:
            raise ElementVanishedError("點擊失敗") from e

    def type(self, node, value: str) -> None:
        try:
            node.clear()
            node.send_keys(value)
        except (StaleElementReferenceException, NoSuchElementException) as e:
            raise ElementVanishedError("輸入失敗") from e

    def wait_until(self, predicate: Callable[[], object], timeout: float) -> bool:
        return wait_until(
            predicate, timeout=timeout,
            ignored=(StaleElementReferenceException, NoSuchElementException),
        )
