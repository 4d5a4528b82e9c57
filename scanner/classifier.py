"""
Element Classifier

classify(tag, attrs) 把一個 DOM node 對應到 ElementRole。
只看 tag 與固定的一組屬性，不碰 session，相同輸入永遠得到相同結果。

回傳 None 代表「不是候選元素」（hidden input、純靜態標記）；
任何可互動但無法辨識的 node 一律歸類為 CustomComponent。
"""

from __future__ import annotations

from generator.schema import INSPECTION_ONLY_ROLES, ElementRole

# 測試專用屬性，依優先序排列
TEST_ID_ATTRIBUTES = (
    "data-test-id", "data-testid", "data-test", "data-cy", "data-qa", "data-selenium",
)

# classify 需要讀取的屬性
CLASSIFY_ATTRIBUTES = (
    "type", "role", "href", "multiple", "contenteditable",
    "aria-multiselectable", "aria-haspopup", "aria-expanded",
    "data-toggle", "data-bs-toggle", "class", "onclick", "onchange", "tabindex",
) + TEST_ID_ATTRIBUTES

# 掃描時的候選 node（document order，不重複）
CANDIDATE_QUERY = ", ".join([
    "input", "textarea", "select", "button", "a[href]", "img", "table",
    "[role]", "[contenteditable]", "[onclick]", "[onchange]", "[tabindex]",
    "[aria-haspopup]", "[data-toggle]", "[data-bs-toggle]", ".dropdown",
] + [f"[{attr}]" for attr in TEST_ID_ATTRIBUTES])

_INPUT_TYPES = {
    "password": ElementRole.PASSWORD_INPUT,
    "number": ElementRole.NUMBER_INPUT,
    "range": ElementRole.NUMBER_INPUT,
    "file": ElementRole.FILE_INPUT,
    "checkbox": ElementRole.CHECKBOX,
    "radio": ElementRole.RADIO_GROUP,
    "submit": ElementRole.BUTTON,
    "button": ElementRole.BUTTON,
    "reset": ElementRole.BUTTON,
    "image": ElementRole.BUTTON,
}

_ARIA_ROLES = {
    "textbox": ElementRole.TEXT_INPUT,
    "searchbox": ElementRole.TEXT_INPUT,
    "spinbutton": ElementRole.NUMBER_INPUT,
    "grid": ElementRole.TABLE,
    "table": ElementRole.TABLE,
    "treegrid": ElementRole.TABLE,
    "combobox": ElementRole.CUSTOM_DROPDOWN,
    "button": ElementRole.BUTTON,
    "link": ElementRole.LINK,
    "img": ElementRole.IMAGE,
    "checkbox": ElementRole.CHECKBOX,
    "switch": ElementRole.CHECKBOX,
    "radio": ElementRole.RADIO_GROUP,
    "radiogroup": ElementRole.RADIO_GROUP,
}

_INTERACTIVE_ARIA_ROLES = frozenset({
    "menuitem", "menuitemcheckbox", "menuitemradio",
    "tab", "option", "treeitem", "slider",
})


def _flag(value: str | None) -> bool:
    """HTML boolean 屬性：存在且不是 "false" 就成立"""
    return value is not None and value.strip().lower() != "false"


def _has_toggle_affordance(tag: str, attrs: dict) -> bool:
    if _flag(attrs.get("aria-haspopup")):
        return True
    for key in ("data-toggle", "data-bs-toggle"):
        if (attrs.get(key) or "").lower() == "dropdown":
            return True
    classes = (attrs.get("class") or "").lower().split()
    if "dropdown" in classes or "dropdown-toggle" in classes:
        return True
    # aria-expanded 在按鈕/連結上常見於手風琴與選單按鈕，不算下拉
    return tag not in ("button", "a") and attrs.get("aria-expanded") is not None


def _is_focusable(attrs: dict) -> bool:
    try:
        return int(attrs.get("tabindex") or "-1") >= 0
    except ValueError:
        return False


def classify(tag: str, attrs: dict) -> ElementRole | None:
    """
    判斷元素角色。

    Args:
        tag: 小寫 tag 名稱
        attrs: 屬性名 → 值（不存在的屬性為 None 或缺席）

    Returns:
        ElementRole，非候選元素回傳 None
    """
    tag = tag.lower()
    role = (attrs.get("role") or "").strip().lower()

    # 原生表單元件
    if tag == "input":
        input_type = (attrs.get("type") or "text").strip().lower()
        if input_type == "hidden":
            return None
        return _INPUT_TYPES.get(input_type, ElementRole.TEXT_INPUT)
    if tag == "textarea":
        return ElementRole.TEXT_INPUT
    if tag == "select":
        if _flag(attrs.get("multiple")):
            return ElementRole.MULTI_SELECT
        return ElementRole.SINGLE_SELECT
    if tag == "table":
        return ElementRole.TABLE

    # 明確的 ARIA role 優先於 tag 本身的語意
    if role == "listbox":
        if (attrs.get("aria-multiselectable") or "").lower() == "true":
            return ElementRole.MULTI_SELECT
        return ElementRole.SINGLE_SELECT
    if role in _ARIA_ROLES:
        return _ARIA_ROLES[role]

    if _flag(attrs.get("contenteditable")):
        return ElementRole.TEXT_INPUT
    if _has_toggle_affordance(tag, attrs):
        return ElementRole.CUSTOM_DROPDOWN

    if tag == "button":
        return ElementRole.BUTTON
    if tag == "a" and attrs.get("href") is not None:
        return ElementRole.LINK
    if tag == "img":
        return ElementRole.IMAGE

    if (
        role in _INTERACTIVE_ARIA_ROLES
        or attrs.get("onclick") is not None
        or attrs.get("onchange") is not None
        or _is_focusable(attrs)
        or any(attrs.get(a) for a in TEST_ID_ATTRIBUTES)
    ):
        return ElementRole.CUSTOM_COMPONENT

    return None


def is_interactive(role: ElementRole) -> bool:
    return role not in INSPECTION_ONLY_ROLES
