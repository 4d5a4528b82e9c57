"""
Operation Catalog Builder

依元素角色產生 page object 方法清單（只有合約，沒有實作）。

方法名稱 = 動詞 (OperationKind.value) + 名詞（元素的可讀標籤）：
    typeEmailField / clickSubmitButton / isCheckedRememberMe

名稱重複時依 document order 加上 2、3…：
    clickLeaderboard / clickLeaderboard2

同一頁面重掃會得到相同的名稱，下游測試程式可以放心引用。
"""

from __future__ import annotations

import re

from generator.schema import (
    DetectedElement,
    ElementRole,
    MethodDescriptor,
    MethodParameter,
    OperationKind,
    ParameterKind,
    ReturnKind,
)
from scanner.classifier import TEST_ID_ATTRIBUTES
from scanner.selector import is_volatile_id
from utils.logger import logger

Op = OperationKind

_TEXT_INPUT_OPS = (
    Op.TYPE, Op.CLEAR, Op.READ, Op.IS_ENABLED, Op.IS_VISIBLE, Op.IS_REQUIRED,
    Op.READ_PLACEHOLDER,
)
_SINGLE_SELECT_OPS = (
    Op.SELECT_BY_VALUE, Op.SELECT_BY_INDEX, Op.SELECT_BY_TEXT, Op.READ_SELECTED,
    Op.LIST_OPTIONS, Op.CLEAR_SELECTION,
)
_CLICKABLE_OPS = (
    Op.CLICK, Op.DOUBLE_CLICK, Op.RIGHT_CLICK, Op.READ_TEXT, Op.IS_ENABLED,
    Op.IS_VISIBLE, Op.HOVER,
)

# 角色 → 合法操作（順序即輸出順序）
VOCABULARY: dict[ElementRole, tuple[OperationKind, ...]] = {
    ElementRole.TEXT_INPUT: _TEXT_INPUT_OPS,
    ElementRole.PASSWORD_INPUT: _TEXT_INPUT_OPS + (Op.REVEAL_TOGGLE,),
    ElementRole.NUMBER_INPUT: _TEXT_INPUT_OPS + (Op.READ_MIN, Op.READ_MAX),
    ElementRole.FILE_INPUT: (
        Op.UPLOAD, Op.CLEAR, Op.IS_ENABLED, Op.IS_VISIBLE, Op.IS_REQUIRED,
    ),
    ElementRole.CHECKBOX: (Op.CHECK, Op.UNCHECK, Op.IS_CHECKED, Op.TOGGLE),
    ElementRole.RADIO_GROUP: (
        Op.SELECT_OPTION, Op.READ_SELECTED, Op.LIST_OPTIONS, Op.IS_ENABLED,
    ),
    ElementRole.SINGLE_SELECT: _SINGLE_SELECT_OPS,
    ElementRole.MULTI_SELECT: _SINGLE_SELECT_OPS + (
        Op.SELECT_MANY, Op.DESELECT_ONE, Op.DESELECT_ALL,
    ),
    ElementRole.CUSTOM_DROPDOWN: (
        Op.OPEN, Op.CLOSE, Op.SELECT_OPTION, Op.READ_SELECTED, Op.LIST_OPTIONS,
        Op.IS_VISIBLE,
    ),
    ElementRole.TABLE: (
        Op.ROW_COUNT, Op.COLUMN_COUNT, Op.CELL, Op.SELECT_ROW, Op.SORT_BY_COLUMN,
        Op.FILTER_BY_COLUMN, Op.SELECT_ALL, Op.EXPORT_TEXT,
    ),
    ElementRole.BUTTON: _CLICKABLE_OPS,
    ElementRole.LINK: _CLICKABLE_OPS,
    ElementRole.IMAGE: (Op.READ_SRC, Op.READ_ALT, Op.READ_DIMENSIONS),
    ElementRole.CUSTOM_COMPONENT: (Op.CLICK, Op.IS_VISIBLE, Op.READ_TEXT),
}

_ROW = MethodParameter("row", ParameterKind.NUMBER)
_COLUMN = MethodParameter("column", ParameterKind.NUMBER)

_PARAMETERS: dict[OperationKind, tuple[MethodParameter, ...]] = {
    Op.TYPE: (MethodParameter("text"),),
    Op.UPLOAD: (MethodParameter("file_path"),),
    Op.SELECT_BY_VALUE: (MethodParameter("value"),),
    Op.SELECT_BY_INDEX: (MethodParameter("index", ParameterKind.NUMBER),),
    Op.SELECT_BY_TEXT: (MethodParameter("text"),),
    Op.SELECT_MANY: (MethodParameter("values", ParameterKind.STRING_LIST),),
    Op.DESELECT_ONE: (MethodParameter("value"),),
    Op.SELECT_OPTION: (MethodParameter("option"),),
    Op.CELL: (_ROW, _COLUMN),
    Op.SELECT_ROW: (_ROW,),
    Op.SORT_BY_COLUMN: (_COLUMN,),
    Op.FILTER_BY_COLUMN: (_COLUMN, MethodParameter("value")),
}

_RETURNS: dict[OperationKind, ReturnKind] = {
    Op.READ: ReturnKind.STRING,
    Op.IS_ENABLED: ReturnKind.BOOLEAN,
    Op.IS_VISIBLE: ReturnKind.BOOLEAN,
    Op.IS_REQUIRED: ReturnKind.BOOLEAN,
    Op.IS_CHECKED: ReturnKind.BOOLEAN,
    Op.READ_PLACEHOLDER: ReturnKind.STRING,
    Op.READ_MIN: ReturnKind.NUMBER,
    Op.READ_MAX: ReturnKind.NUMBER,
    Op.READ_SELECTED: ReturnKind.STRING,
    Op.LIST_OPTIONS: ReturnKind.STRING_LIST,
    Op.ROW_COUNT: ReturnKind.NUMBER,
    Op.COLUMN_COUNT: ReturnKind.NUMBER,
    Op.CELL: ReturnKind.STRING,
    Op.EXPORT_TEXT: ReturnKind.STRING,
    Op.READ_TEXT: ReturnKind.STRING,
    Op.READ_SRC: ReturnKind.STRING,
    Op.READ_ALT: ReturnKind.STRING,
    Op.READ_DIMENSIONS: ReturnKind.DIMENSIONS,
}

# 這些角色的可見文字是內容（選項、儲存格）而不是標籤
_CONTENT_ROLES = frozenset({
    ElementRole.TABLE, ElementRole.SINGLE_SELECT, ElementRole.MULTI_SELECT,
})

_MAX_NOUN_WORDS = 5
_WORDS = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")


def split_words(label: str) -> list[str]:
    """email-field → email, field；saveAndClose → save, And, Close"""
    return _WORDS.findall(label)


def noun_from_label(label: str) -> str:
    """轉成 CamelCase 名詞，最多 5 個字；無法轉換回傳空字串"""
    words = split_words(label)[:_MAX_NOUN_WORDS]
    return "".join(w[:1].upper() + w[1:].lower() for w in words)


def element_noun(element: DetectedElement) -> str:
    """
    元素的名詞，依序嘗試：
    test id → aria-label → 可見文字 → placeholder → name → DOM id → alt / title
    都沒有就用角色名稱。
    """
    attrs = element.attributes
    sources = [attrs.get(a) for a in TEST_ID_ATTRIBUTES]
    text = "" if element.role in _CONTENT_ROLES else element.text_snapshot
    sources += [attrs.get("aria-label"), text, attrs.get("placeholder"), attrs.get("name")]
    dom_id = attrs.get("id")
    if dom_id and not is_volatile_id(dom_id):
        sources.append(dom_id)
    sources += [attrs.get("alt"), attrs.get("title")]

    role_name = element.role.value
    for source in sources:
        if not source:
            continue
        noun = noun_from_label(source)
        if noun:
            return role_name + noun if noun[0].isdigit() else noun
    return role_name


class OperationCatalogBuilder:
    """由 DetectedElement 清單產生 MethodDescriptor 清單"""

    def __init__(self, vocabulary: dict[ElementRole, tuple[OperationKind, ...]] | None = None):
        self.vocabulary = vocabulary or VOCABULARY

    def build(self, elements: list[DetectedElement]) -> list[MethodDescriptor]:
        used: set[str] = set()
        methods: list[MethodDescriptor] = []

        for element in sorted(elements, key=lambda e: e.document_index):
            noun = element_noun(element)
            for op in self.vocabulary.get(element.role, ()):
                name = self._unique(op.value + noun, used)
                methods.append(MethodDescriptor(
                    name=name,
                    owner_element_id=element.id,
                    operation=op,
                    parameters=[
                        MethodParameter(p.name, p.kind, p.required, p.default)
                        for p in _PARAMETERS.get(op, ())
                    ],
                    return_kind=self._return_kind(element.role, op),
                ))

        logger.info(f"[Catalog] {len(elements)} 個元素 → {len(methods)} 個方法")
        return methods

    @staticmethod
    def _unique(name: str, used: set[str]) -> str:
        candidate = name
        n = 2
        while candidate in used:
            candidate = f"{name}{n}"
            n += 1
        used.add(candidate)
        return candidate

    @staticmethod
    def _return_kind(role: ElementRole, op: OperationKind) -> ReturnKind:
        if op is Op.READ_SELECTED and role is ElementRole.MULTI_SELECT:
            return ReturnKind.STRING_LIST
        return _RETURNS.get(op, ReturnKind.VOID)


def build_catalog(elements: list[DetectedElement]) -> list[MethodDescriptor]:
    return OperationCatalogBuilder().build(elements)
