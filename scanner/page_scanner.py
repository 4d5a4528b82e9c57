"""
PageScanner：掃描目前頁面，產生 DetectedElement 清單

流程：
1. 以 CANDIDATE_QUERY 列出候選 node（document order）
2. 讀取固定屬性 → classify() 判斷角色
3. 同名 radio 合併成一個 RadioGroup
4. SelectorSynthesizer 產生唯一的 primary selector
5. 補上角色相關的屬性（placeholder、min/max、options、表格 selector…）

單一元素出錯（消失、selector 無法唯一）只記警告並跳過，不中止掃描。

用法：
    scanner = PageScanner(session)
    result = scanner.scan()
    for el in result.elements:
        print(el.id, el.role.value, el.primary_selector)
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Callable

from config.config import Config
from core.exceptions import (
    ElementVanishedError,
    FailureReason,
    SelectorCollisionUnresolvedError,
)
from generator.schema import DetectedElement, ElementRole, ScanWarning
from scanner.classifier import (
    CANDIDATE_QUERY,
    CLASSIFY_ATTRIBUTES,
    TEST_ID_ATTRIBUTES,
    classify,
    is_interactive,
)
from scanner.selector import SelectorSynthesizer, css_string, is_volatile_id
from utils.logger import logger

# 命名與 id 會用到的穩定屬性
LABEL_ATTRIBUTES = ("id", "name", "aria-label", "placeholder", "alt", "title")

_TEXT_INPUT_ATTRIBUTES = ("placeholder", "required", "maxlength", "pattern", "disabled")

_ROLE_ATTRIBUTES: dict[ElementRole, tuple[str, ...]] = {
    ElementRole.TEXT_INPUT: _TEXT_INPUT_ATTRIBUTES,
    ElementRole.PASSWORD_INPUT: _TEXT_INPUT_ATTRIBUTES,
    ElementRole.NUMBER_INPUT: _TEXT_INPUT_ATTRIBUTES + ("min", "max", "step"),
    ElementRole.FILE_INPUT: ("accept", "multiple", "required", "disabled"),
    ElementRole.CHECKBOX: ("value", "required", "disabled"),
    ElementRole.RADIO_GROUP: ("required", "disabled"),
    ElementRole.SINGLE_SELECT: ("required", "disabled"),
    ElementRole.MULTI_SELECT: ("multiple", "required", "disabled", "size"),
    ElementRole.CUSTOM_DROPDOWN: ("aria-controls", "aria-haspopup"),
    ElementRole.BUTTON: ("disabled", "form"),
    ElementRole.LINK: ("target",),
    ElementRole.IMAGE: ("src", "width", "height"),
}

_BOOLEAN_ATTRIBUTES = frozenset({"required", "disabled", "multiple"})

_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


@dataclass
class ScanResult:
    """一次掃描的產出"""
    url: str
    title: str = ""
    description: str = ""
    elements: list[DetectedElement] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)


@dataclass
class ElementDiff:
    """兩次掃描之間的差異（以 element id 比對）"""
    added: list[DetectedElement] = field(default_factory=list)
    removed: list[DetectedElement] = field(default_factory=list)
    modified: list[tuple[DetectedElement, DetectedElement]] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.modified)


def role_slug(role: ElementRole) -> str:
    """TextInput → text_input"""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", role.value).lower()


def _slug(value: str) -> str:
    return _SLUG_CHARS.sub("_", value.lower()).strip("_")[:40].rstrip("_")


def _truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 1].rstrip() + "…"


class PageScanner:
    """掃描目前頁面的互動元素"""

    def __init__(
        self,
        session,
        text_limit: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
        settle_delay: float | None = None,
    ):
        self.session = session
        self.text_limit = text_limit or Config.TEXT_SNAPSHOT_LIMIT
        self._sleep = sleep
        self._settle_delay = settle_delay

    def scan(self) -> ScanResult:
        url = self.session.current_url()
        result = ScanResult(
            url=url,
            title=self.session.title(),
            description=self._page_description(),
        )
        synthesizer = SelectorSynthesizer(
            self.session, settle_delay=self._settle_delay, sleep=self._sleep,
        )
        used_ids: set[str] = set()
        radio_groups: dict[str, DetectedElement] = {}

        nodes = self.session.find_all(CANDIDATE_QUERY)
        logger.info(f"[Scanner] 掃描 {url}: {len(nodes)} 個候選 node")

        for index, node in enumerate(nodes):
            try:
                element = self._scan_node(node, index, synthesizer, radio_groups)
            except ElementVanishedError as e:
                logger.warning(f"[Scanner] 第 {index} 個 node 已消失，略過: {e}")
                result.warnings.append(ScanWarning(e.reason, str(e), index))
                continue
            except SelectorCollisionUnresolvedError as e:
                logger.warning(f"[Scanner] 第 {index} 個 node 無法產生唯一 selector，略過")
                result.warnings.append(ScanWarning(e.reason, str(e), index))
                continue

            if element is None:
                continue

            element.id = self._unique_id(element, used_ids)
            if element.locator.index is not None:
                result.warnings.append(ScanWarning(
                    FailureReason.SELECTOR_COLLISION_UNRESOLVED,
                    str(SelectorCollisionUnresolvedError(
                        element.locator.selector, element.locator.index,
                    )),
                    index,
                ))
            result.elements.append(element)

        logger.info(
            f"[Scanner] 完成: {len(result.elements)} 個元素，"
            f"{len(result.warnings)} 個警告"
        )
        return result

    # ── 單一 node ──

    def _scan_node(self, node, index: int, synthesizer, radio_groups) -> DetectedElement | None:
        tag = self.session.tag_name(node)
        attrs = self._read(node, CLASSIFY_ATTRIBUTES + LABEL_ATTRIBUTES)
        role = classify(tag, attrs)
        if role is None:
            return None

        radio_name = attrs.get("name") if tag == "input" and role is ElementRole.RADIO_GROUP else None
        if radio_name and radio_name in radio_groups:
            self._add_radio_option(radio_groups[radio_name], node)
            return None

        locator = synthesizer.synthesize(node, tag, attrs)
        element = DetectedElement(
            id="",
            role=role,
            locator=locator,
            tag=tag,
            attributes=self._stable_attributes(attrs),
            is_interactive=is_interactive(role),
            text_snapshot=_truncate(self.session.text(node), self.text_limit),
            document_index=index,
        )
        self._describe(element, node)

        if radio_name:
            element.attributes["group_selector"] = (
                f'input[type="radio"][name={css_string(radio_name)}]'
            )
            element.attributes["options"] = []
            self._add_radio_option(element, node)
            radio_groups[radio_name] = element
        return element

    def _read(self, node, names) -> dict:
        attrs = {}
        for name in names:
            value = self.session.read_attribute(node, name)
            if value is not None:
                attrs[name] = value
        return attrs

    def _stable_attributes(self, attrs: dict) -> dict:
        kept = {}
        for key in ("type", "role", "href", "class") + LABEL_ATTRIBUTES + TEST_ID_ATTRIBUTES:
            if key in attrs:
                kept[key] = attrs[key]
        return kept

    def _add_radio_option(self, group: DetectedElement, node) -> None:
        value = self.session.read_attribute(node, "value")
        group.attributes["options"].append(value if value is not None else "on")

    def _describe(self, element: DetectedElement, node) -> None:
        """補上角色相關屬性"""
        for name in _ROLE_ATTRIBUTES.get(element.role, ()):
            value = self.session.read_attribute(node, name)
            if name in _BOOLEAN_ATTRIBUTES:
                element.attributes[name] = value is not None and value.lower() != "false"
            elif value is not None:
                element.attributes[name] = value

        # 以下需要能當 CSS 前綴的 selector，編號定位無法再往下組合
        if element.locator.index is not None:
            return
        base = element.locator.selector

        if element.role in (ElementRole.SINGLE_SELECT, ElementRole.MULTI_SELECT):
            if element.tag == "select":
                option_query = f"{base} option"
            else:
                option_query = f'{base} [role="option"]'
            element.attributes["options"] = [
                self._option(opt) for opt in self.session.find_all(option_query)
            ]
        elif element.role is ElementRole.TABLE:
            element.attributes.update(self._table_selectors(element, base))

    def _option(self, node) -> dict:
        value = self.session.read_attribute(node, "value")
        text = self.session.text(node)
        return {"value": value if value is not None else text, "text": text}

    def _table_selectors(self, element: DetectedElement, base: str) -> dict:
        if element.tag == "table":
            has_body = bool(self.session.find_all(f"{base} > tbody"))
            row = f"{base} > tbody > tr" if has_body else f"{base} tr"
            selectors = {
                "header_selector": f"{base} th",
                "row_selector": row,
                "cell_selector": "td",
            }
        else:
            selectors = {
                "header_selector": f'{base} [role="columnheader"]',
                "row_selector": f'{base} [role="row"]',
                "cell_selector": '[role="gridcell"], [role="cell"]',
            }
        selectors["action_selector"] = "button, a[href], input[type=checkbox]"
        selectors["row_count"] = len(self.session.find_all(selectors["row_selector"]))
        return selectors

    def _page_description(self) -> str:
        metas = self.session.find_all('meta[name="description"]')
        if not metas:
            return ""
        return (self.session.read_attribute(metas[0], "content") or "").strip()

    # ── element id ──

    def _unique_id(self, element: DetectedElement, used: set[str]) -> str:
        """<role>_<slug>，只取穩定屬性，不使用 value 或可見文字"""
        attrs = element.attributes
        source = ""
        for key in TEST_ID_ATTRIBUTES + ("aria-label",):
            if attrs.get(key):
                source = attrs[key]
                break
        if not source and attrs.get("id") and not is_volatile_id(attrs["id"]):
            source = attrs["id"]
        if not source:
            source = attrs.get("name") or attrs.get("placeholder") or ""

        slug = _slug(source) or f"{element.tag}_{element.document_index}"
        base = f"{role_slug(element.role)}_{slug}"
        candidate = base
        n = 2
        while candidate in used:
            candidate = f"{base}_{n}"
            n += 1
        used.add(candidate)
        return candidate


def diff_elements(old: list[DetectedElement], new: list[DetectedElement]) -> ElementDiff:
    """比對兩次掃描：新增 / 移除 / 角色、selector 或屬性有變的元素"""
    old_by_id = {e.id: e for e in old}
    new_by_id = {e.id: e for e in new}
    diff = ElementDiff()

    for element in new:
        previous = old_by_id.get(element.id)
        if previous is None:
            diff.added.append(element)
        elif (
            previous.role != element.role
            or previous.primary_selector != element.primary_selector
            or previous.attributes != element.attributes
        ):
            diff.modified.append((previous, element))

    diff.removed = [e for e in old if e.id not in new_by_id]
    return diff

