"""
HtmlSnapshotSession：以 BeautifulSoup 實作的 BrowserSession

把「URL → HTML」的對照表當成一個沒有 JavaScript 的瀏覽器：
- navigate 會依 redirects 表轉址後重新解析文件（每次都是新的 node）
- 點連結會前往 href，點 submit 按鈕會呼叫 handle_submit()
- 輸入值寫回 node 的 value 屬性

用途：掃描存檔的 HTML，以及在單元測試中當作 DOM fixture。
要模擬伺服器端行為（例如登入）時，繼承並覆寫 handle_submit()。
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from core.exceptions import (
    InvalidSelectorError,
    NavigationFailure,
    UnexpectedRedirectLoopError,
)
from utils.logger import logger
from utils.wait_helper import wait_until

_PARSER = "html.parser"
_MAX_REDIRECT_HOPS = 10


class HtmlSnapshotSession:
    """靜態 HTML 的 BrowserSession"""

    def __init__(
        self,
        pages: dict[str, str],
        redirects: dict[str, str] | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        self.pages = dict(pages)
        self.redirects = dict(redirects or {})
        self.visited: list[str] = []
        self._sleep = sleep
        self._url = "about:blank"
        self._soup = BeautifulSoup("", _PARSER)

    @classmethod
    def from_file(cls, path: str | Path, url: str | None = None) -> "HtmlSnapshotSession":
        """讀取存檔的 HTML；url 未指定時使用 file:// URI"""
        path = Path(path).resolve()
        html = path.read_text(encoding="utf-8")
        return cls({url or path.as_uri(): html})

    # ── 導航 ──

    def navigate(self, url: str) -> None:
        resolved = self._follow_redirects(url)
        html = self._lookup(resolved)
        if html is None:
            raise NavigationFailure(url, "找不到頁面")
        self._url = resolved
        self._soup = BeautifulSoup(html, _PARSER)
        self.visited.append(resolved)
        logger.debug(f"[Session] 載入 {resolved}")

    def _follow_redirects(self, url: str) -> str:
        seen = [url]
        while True:
            target = self.redirect_for(url)
            if target is None:
                return url
            url = urljoin(url, target)
            seen.append(url)
            if len(seen) > _MAX_REDIRECT_HOPS:
                raise UnexpectedRedirectLoopError(url, len(seen))

    def redirect_for(self, url: str) -> str | None:
        """回傳 url 的轉址目標，沒有轉址回傳 None；子類別可覆寫"""
        if url in self.redirects:
            return self.redirects[url]
        return self.redirects.get(_strip_query(url))

    def _lookup(self, url: str) -> str | None:
        if url in self.pages:
            return self.pages[url]
        return self.pages.get(_strip_query(url))

    def current_url(self) -> str:
        return self._url

    def title(self) -> str:
        if self._soup.title is None:
            return ""
        return self._soup.title.get_text(strip=True)

    # ── 查詢 ──

    def find_all(self, query: str) -> list[Tag]:
        try:
            return self._soup.select(query)
        except SelectorSyntaxError as e:
            raise InvalidSelectorError(query, str(e).partition("\n")[0]) from e

    def read_attribute(self, node: Tag, name: str) -> str | None:
        value = node.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def text(self, node: Tag) -> str:
        return node.get_text(" ", strip=True)

    def tag_name(self, node: Tag) -> str:
        return node.name

    def structural_path(self, node: Tag) -> str:
        parts = []
        el = node
        while isinstance(el, Tag) and el.name != "[document]":
            if el.name == "html":
                parts.append("html")
                break
            index = 1 + len(el.find_previous_siblings(el.name))
            parts.append(f"{el.name}:nth-of-type({index})")
            el = el.parent
        return " > ".join(reversed(parts))

    def same_node(self, a, b) -> bool:
        # Tag.__eq__ 比較的是內容，這裡要的是同一個 node
        return a is b

    # ── 操作 ──

    def click(self, node: Tag) -> None:
        if node.name == "a" and node.get("href"):
            self.navigate(urljoin(self._url, node["href"]))
            return
        if _is_submit(node):
            form = node.find_parent("form")
            if form is not None:
                self.handle_submit(form, self.form_values(form))

    def type(self, node: Tag, value: str) -> None:
        node["value"] = value

    def form_values(self, form: Tag) -> dict[str, str]:
        values = {}
        for field in form.select("input, textarea"):
            key = field.get("name") or field.get("id") or field.get("type", "")
            values[key] = field.get("value", "")
        return values

    def handle_submit(self, form: Tag, values: dict[str, str]) -> None:
        """預設行為：有 action 就前往 action"""
        action = form.get("action")
        if action:
            self.navigate(urljoin(self._url, action))

    def wait_until(self, predicate: Callable[[], object], timeout: float) -> bool:
        if self._sleep is None:
            return wait_until(predicate, timeout=timeout)
        return wait_until(predicate, timeout=timeout, sleep=self._sleep)

    def close(self) -> None:
        self._soup = BeautifulSoup("", _PARSER)
        self._url = "about:blank"


def _strip_query(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}{parts.path}" if parts.scheme else parts.path


def _is_submit(node: Tag) -> bool:
    if node.name == "button":
        return node.get("type", "submit").lower() == "submit"
    if node.name == "input":
        return node.get("type", "").lower() in ("submit", "image")
    return False
