"""
Selector Synthesizer

為每個元素產生 primary selector。策略依固定優先序嘗試：

    1. test id      [data-testid="email"]
    2. aria-label   [aria-label="Close"]
    3. DOM id       #username / [id^="row-"]
    4. name         input[name="q"][type="text"]
    5. 結構路徑     html > body:nth-of-type(1) > a:nth-of-type(2)

第一個「只對應到這個 node、且尚未被其他元素使用」的策略勝出。
全部衝突時，以 document order 加上編號：`<selector> >> nth=<k>`。

同一個 synthesizer 只服務一次掃描；已指派的 selector 記在 assigned 裡。
"""

from __future__ import annotations

import re
import time
from typing import Callable

from config.config import Config
from core.exceptions import ElementVanishedError, SelectorCollisionUnresolvedError
from generator.schema import Locator, LocatorStrategy
from scanner.classifier import TEST_ID_ATTRIBUTES
from utils.logger import logger

# 追蹤工具 (Hotjar 等) 產生的 id、純數字、JSF 自動編號
_VOLATILE_ID = re.compile(r"^(_?hj|\d+$|j_idt)", re.IGNORECASE)
_TRAILING_COUNTER = re.compile(r"\d{4,}$")
_PLAIN_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


def css_string(value: str) -> str:
    """CSS 屬性值用的雙引號字串"""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    escaped = escaped.replace("\n", "\\a ").replace("\r", "")
    return f'"{escaped}"'


def is_volatile_id(value: str) -> bool:
    return bool(_VOLATILE_ID.match(value))


def id_selector(value: str) -> str | None:
    """
    DOM id 的 selector，不穩定的 id 回傳 None。

    結尾是 4 位以上數字的 id 視為「前綴 + 流水號」，改用前綴比對。
    """
    value = value.strip()
    if not value or is_volatile_id(value):
        return None
    if _TRAILING_COUNTER.search(value):
        prefix = _TRAILING_COUNTER.sub("", value)
        return f"[id^={css_string(prefix)}]" if prefix else None
    if _PLAIN_IDENT.match(value):
        return f"#{value}"
    return f"[id={css_string(value)}]"


class SelectorSynthesizer:
    """單次掃描的 selector 產生器"""

    def __init__(
        self,
        session,
        settle_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session
        self.settle_delay = Config.RESOLVE_SETTLE_DELAY if settle_delay is None else settle_delay
        self._sleep = sleep
        self.assigned: set[str] = set()

    def candidates(self, tag: str, attrs: dict) -> list[tuple[LocatorStrategy, str]]:
        """依優先序列出屬性型策略（不含結構路徑）"""
        result: list[tuple[LocatorStrategy, str]] = []

        for attr in TEST_ID_ATTRIBUTES:
            value = attrs.get(attr)
            if value:
                result.append((LocatorStrategy.TEST_ID, f"[{attr}={css_string(value)}]"))
                break

        label = attrs.get("aria-label")
        if label and label.strip():
            result.append((LocatorStrategy.ARIA_LABEL, f"[aria-label={css_string(label)}]"))

        dom_id = attrs.get("id")
        if dom_id:
            selector = id_selector(dom_id)
            if selector:
                result.append((LocatorStrategy.DOM_ID, selector))

        name = attrs.get("name")
        if name:
            selector = f"{tag}[name={css_string(name)}]"
            if tag == "input" and attrs.get("type"):
                selector += f"[type={css_string(attrs['type'])}]"
            result.append((LocatorStrategy.NAME, selector))

        return result

    def synthesize(self, node, tag: str, attrs: dict) -> Locator:
        """
        產生並登記這個元素的 Locator。

        Raises:
            ElementVanishedError: node 已不在 DOM 中
            SelectorCollisionUnresolvedError: 連加編號都無法得到唯一 selector
        """
        tried = self.candidates(tag, attrs)
        usable: list[tuple[LocatorStrategy, str]] = []
        matched: list[tuple[str, list]] = []

        def attempt(strategy: LocatorStrategy, selector: str) -> Locator | None:
            nodes = self._resolve(selector)
            if not any(self.session.same_node(n, node) for n in nodes):
                if strategy is LocatorStrategy.STRUCTURAL or not nodes:
                    raise ElementVanishedError(selector)
                return None
            matched.append((selector, nodes))
            if len(nodes) != 1:
                return None
            usable.append((strategy, selector))
            if selector in self.assigned:
                return None
            return Locator(strategy=strategy, selector=selector)

        # 屬性型策略全部檢查一遍，唯一的都留在 candidates 當備援
        chosen = None
        for strategy, selector in tried:
            locator = attempt(strategy, selector)
            if chosen is None:
                chosen = locator

        if chosen is None:
            structural = self.session.structural_path(node)
            if not structural:
                raise ElementVanishedError("無法取得結構路徑")
            chosen = attempt(LocatorStrategy.STRUCTURAL, structural)

        if chosen is None:
            return self._disambiguate(node, matched, usable)
        return self._assign(chosen, usable)

    def _resolve(self, selector: str) -> list:
        nodes = self.session.find_all(selector)
        if len(nodes) > 1 and self.settle_delay:
            # 過渡中的 DOM 可能暫時有重複 node，等一下再查一次
            self._sleep(self.settle_delay)
            nodes = self.session.find_all(selector)
        return nodes

    def _disambiguate(self, node, matched, usable) -> Locator:
        for selector, nodes in matched:
            index = next(
                i for i, n in enumerate(nodes) if self.session.same_node(n, node)
            )
            locator = Locator(
                strategy=LocatorStrategy.DISAMBIGUATED, selector=selector, index=index,
            )
            if locator.primary not in self.assigned:
                logger.warning(f"[Scanner] selector 衝突，改用編號: {locator.primary}")
                return self._assign(locator, usable)
        selector = matched[0][0] if matched else ""
        raise SelectorCollisionUnresolvedError(selector, len(matched))

    def _assign(self, locator: Locator, usable) -> Locator:
        locator.candidates = list(usable)
        self.assigned.add(locator.primary)
        return locator
