"""
資料結構定義
掃描結果（元素 / 方法 / run metadata）與登入設定的統一格式。

所有物件每次掃描重新建立，交給 renderer 後即丟棄；
同一頁面重掃會得到結構相同、但不是同一批物件的 catalog。
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum

from core.exceptions import FailureReason


class ElementRole(Enum):
    """元素語意角色（封閉集合）"""
    TEXT_INPUT = "TextInput"
    PASSWORD_INPUT = "PasswordInput"
    NUMBER_INPUT = "NumberInput"
    FILE_INPUT = "FileInput"
    CHECKBOX = "Checkbox"
    RADIO_GROUP = "RadioGroup"
    SINGLE_SELECT = "SingleSelect"
    MULTI_SELECT = "MultiSelect"
    CUSTOM_DROPDOWN = "CustomDropdown"
    TABLE = "Table"
    BUTTON = "Button"
    LINK = "Link"
    IMAGE = "Image"
    CUSTOM_COMPONENT = "CustomComponent"


# 只能檢視、不能操作的角色
INSPECTION_ONLY_ROLES = frozenset({ElementRole.IMAGE})


class LocatorStrategy(Enum):
    """selector 策略，依優先序排列"""
    TEST_ID = "test_id"
    ARIA_LABEL = "aria_label"
    DOM_ID = "dom_id"
    NAME = "name"
    STRUCTURAL = "structural"
    DISAMBIGUATED = "disambiguated"


class OperationKind(Enum):
    """各角色的合法操作（值即方法名稱的動詞）"""
    # 輸入框
    TYPE = "type"
    CLEAR = "clear"
    READ = "read"
    IS_ENABLED = "isEnabled"
    IS_VISIBLE = "isVisible"
    IS_REQUIRED = "isRequired"
    READ_PLACEHOLDER = "readPlaceholder"
    REVEAL_TOGGLE = "revealToggle"
    READ_MIN = "readMin"
    READ_MAX = "readMax"
    UPLOAD = "upload"
    # 勾選框
    CHECK = "check"
    UNCHECK = "uncheck"
    IS_CHECKED = "isChecked"
    TOGGLE = "toggle"
    # 下拉 / 單選群組
    SELECT_BY_VALUE = "selectByValue"
    SELECT_BY_INDEX = "selectByIndex"
    SELECT_BY_TEXT = "selectByText"
    READ_SELECTED = "readSelected"
    LIST_OPTIONS = "listOptions"
    CLEAR_SELECTION = "clearSelection"
    SELECT_MANY = "selectMany"
    DESELECT_ONE = "deselectOne"
    DESELECT_ALL = "deselectAll"
    SELECT_OPTION = "selectOption"
    OPEN = "open"
    CLOSE = "close"
    # 表格
    ROW_COUNT = "rowCount"
    COLUMN_COUNT = "columnCount"
    CELL = "cell"
    SELECT_ROW = "selectRow"
    SORT_BY_COLUMN = "sortByColumn"
    FILTER_BY_COLUMN = "filterByColumn"
    SELECT_ALL = "selectAll"
    EXPORT_TEXT = "exportText"
    # 按鈕 / 連結
    CLICK = "click"
    DOUBLE_CLICK = "doubleClick"
    RIGHT_CLICK = "rightClick"
    READ_TEXT = "readText"
    HOVER = "hover"
    # 圖片
    READ_SRC = "readSrc"
    READ_ALT = "readAlt"
    READ_DIMENSIONS = "readDimensions"


class ReturnKind(Enum):
    VOID = "void"
    STRING = "string"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING_LIST = "string[]"
    DIMENSIONS = "dimensions"


class ParameterKind(Enum):
    STRING = "string"
    NUMBER = "number"
    STRING_LIST = "string[]"


class GenerationStatus(Enum):
    SUCCESS = "success"
    SUCCESS_WITH_WARNINGS = "success_with_warnings"
    FAILURE = "failure"


# ── 元素 ──

@dataclass
class Locator:
    """
    元素定位資訊

    candidates 是依優先序嘗試過、可用的 (策略, selector)；
    strategy / selector 是最後選定的 primary。
    index 不為 None 時表示所有策略都衝突，以 document order 編號區分。
    """
    strategy: LocatorStrategy
    selector: str
    candidates: list[tuple[LocatorStrategy, str]] = field(default_factory=list)
    index: int | None = None

    @property
    def primary(self) -> str:
        if self.index is None:
            return self.selector
        return f"{self.selector} >> nth={self.index}"


@dataclass
class DetectedElement:
    """掃描到的單一元素"""
    id: str
    role: ElementRole
    locator: Locator
    tag: str = ""
    attributes: dict = field(default_factory=dict)
    is_interactive: bool = True
    text_snapshot: str = ""
    document_index: int = 0

    @property
    def primary_selector(self) -> str:
        return self.locator.primary


# ── 方法 ──

@dataclass
class MethodParameter:
    name: str
    kind: ParameterKind = ParameterKind.STRING
    required: bool = True
    default: str | None = None


@dataclass
class MethodDescriptor:
    """
    單一 page object 方法的合約（不含實作）

    owner_element_id 只用於查詢，不擁有元素。
    """
    name: str
    owner_element_id: str
    operation: OperationKind
    parameters: list[MethodParameter] = field(default_factory=list)
    return_kind: ReturnKind = ReturnKind.VOID


# ── 登入設定 ──

@dataclass
class Credentials:
    username: str
    password: str = field(repr=False)

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass
class WaitForLogin:
    """
    登入完成的判斷條件

    kind = "url"      → 目前 URL 包含 value
    kind = "selector" → 頁面上出現符合 value 的元素
    """
    value: str
    kind: str = "url"

    def __post_init__(self):
        if self.kind not in ("url", "selector"):
            raise ValueError(f"不支援的 wait_for_login 類型: {self.kind}")


@dataclass
class LoginConfig:
    """登入設定（帳密 + 欄位提示 + 完成條件）"""
    credentials: Credentials
    login_url: str = ""
    username_selector: str = ""
    password_selector: str = ""
    submit_selector: str = ""
    wait_for_login: WaitForLogin | None = None

    def __post_init__(self):
        # 字串視為 "URL 包含"
        if isinstance(self.wait_for_login, str):
            self.wait_for_login = (
                WaitForLogin(self.wait_for_login) if self.wait_for_login else None
            )


# ── 結果 ──

@dataclass
class RunMetadata:
    target_url: str
    final_url: str = ""
    page_title: str = ""
    page_description: str = ""
    element_count: int = 0
    method_count: int = 0
    authentication_used: bool = False
    scanned_at: str = ""
    navigation_states: list[str] = field(default_factory=list)


@dataclass
class ScanWarning:
    """元素層級的降級紀錄（不影響成功與否）"""
    reason: FailureReason
    message: str
    element_index: int | None = None


@dataclass
class PageObjectMap:
    """交給 renderer 的完整頁面描述"""
    metadata: RunMetadata
    elements: list[DetectedElement] = field(default_factory=list)
    methods: list[MethodDescriptor] = field(default_factory=list)

    def element(self, element_id: str) -> DetectedElement | None:
        for el in self.elements:
            if el.id == element_id:
                return el
        return None

    def methods_for(self, element_id: str) -> list[MethodDescriptor]:
        return [m for m in self.methods if m.owner_element_id == element_id]

    def to_dict(self) -> dict:
        """轉為 dict (存檔 / 傳遞用)，所有 Enum 轉為 .value"""
        return _convert(dataclasses.asdict(self))

    @classmethod
    def from_dict(cls, data: dict) -> "PageObjectMap":
        """從 dict 建立（讀取 JSON 用）"""
        elements = []
        for e in data.get("elements", []):
            loc = e["locator"]
            elements.append(DetectedElement(
                id=e["id"],
                role=ElementRole(e["role"]),
                locator=Locator(
                    strategy=LocatorStrategy(loc["strategy"]),
                    selector=loc["selector"],
                    candidates=[
                        (LocatorStrategy(s), sel) for s, sel in loc.get("candidates", [])
                    ],
                    index=loc.get("index"),
                ),
                tag=e.get("tag", ""),
                attributes=e.get("attributes", {}),
                is_interactive=e.get("is_interactive", True),
                text_snapshot=e.get("text_snapshot", ""),
                document_index=e.get("document_index", 0),
            ))

        methods = [
            MethodDescriptor(
                name=m["name"],
                owner_element_id=m["owner_element_id"],
                operation=OperationKind(m["operation"]),
                parameters=[
                    MethodParameter(
                        name=p["name"],
                        kind=ParameterKind(p.get("kind", "string")),
                        required=p.get("required", True),
                        default=p.get("default"),
                    )
                    for p in m.get("parameters", [])
                ],
                return_kind=ReturnKind(m.get("return_kind", "void")),
            )
            for m in data.get("methods", [])
        ]

        return cls(
            metadata=RunMetadata(**data["metadata"]),
            elements=elements,
            methods=methods,
        )


@dataclass
class GenerationResult:
    """一次 run 的單一結果：成功 / 成功但有警告 / 失敗"""
    status: GenerationStatus
    page_map: PageObjectMap | None = None
    reasons: list[FailureReason] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)
    error: str = ""
    rendered: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != GenerationStatus.FAILURE

    def to_dict(self) -> dict:
        return _convert(dataclasses.asdict(self))


def _convert(obj):
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {k: _convert(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_convert(i) for i in obj]
    return obj
