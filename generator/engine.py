"""
Generator Engine (核心引擎)
串接 Navigator → PageScanner → OperationCatalogBuilder，產生 PageObjectMap。

使用方式：
    1. 程式化呼叫（engine 自己開關瀏覽器）：
        engine = GeneratorEngine(login=login_config)
        result = engine.generate("https://example.com/home")

    2. 使用既有 session（呼叫端負責關閉）：
        with SeleniumSession() as session:
            result = GeneratorEngine(session).generate(url)

    3. CLI：
        python -m generator https://example.com/home

產出只有資料結構；轉成特定語法的程式碼由外部 renderer 負責，
engine 不寫任何檔案。
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, Protocol

from config.config import Config
from core.browser_session import SeleniumSession
from core.exceptions import ConfigError, NavigationError
from generator.catalog import OperationCatalogBuilder
from generator.schema import (
    GenerationResult,
    GenerationStatus,
    LoginConfig,
    PageObjectMap,
    RunMetadata,
)
from scanner.navigator import Navigator
from scanner.page_scanner import PageScanner
from utils.logger import logger


class PageObjectRenderer(Protocol):
    """把 PageObjectMap 轉成特定框架語法的外部元件"""

    def render(self, page_map: PageObjectMap) -> str: ...


class GeneratorEngine:
    """頁面掃描 → page object 描述 的產生引擎"""

    def __init__(
        self,
        session=None,
        login: LoginConfig | None = None,
        renderer: PageObjectRenderer | None = None,
        is_login_redirect: Callable[[str, str], bool] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session
        self.login = login
        self.renderer = renderer
        self.is_login_redirect = is_login_redirect
        self._sleep = sleep

    def generate(self, target_url: str) -> GenerationResult:
        """
        掃描 target_url 並產生 page object 描述。

        Returns:
            GenerationResult；導航失敗或設定錯誤時 status 為 failure，
            page_map 為 None
        """
        logger.info(f"[Engine] 開始: {target_url}")
        owns_session = self.session is None
        try:
            for warning in Config.validate(check_browser=owns_session):
                logger.warning(f"[Engine] 設定警告: {warning}")
        except ConfigError as e:
            return self._failure(e)

        session = self.session
        try:
            if owns_session:
                session = SeleniumSession().open()
            return self._run(session, target_url)
        except NavigationError as e:
            return self._failure(e)
        finally:
            # open() 失敗時沒有可關閉的瀏覽器
            if owns_session and session is not None:
                session.close()

    def _run(self, session, target_url: str) -> GenerationResult:
        navigator = Navigator(
            session,
            login=self.login,
            is_login_redirect=self.is_login_redirect,
            sleep=self._sleep,
        )
        outcome = navigator.navigate(target_url)

        scan = PageScanner(session, sleep=self._sleep).scan()
        methods = OperationCatalogBuilder().build(scan.elements)

        page_map = PageObjectMap(
            metadata=RunMetadata(
                target_url=target_url,
                final_url=outcome.final_url,
                page_title=scan.title,
                page_description=scan.description,
                element_count=len(scan.elements),
                method_count=len(methods),
                authentication_used=outcome.authenticated,
                scanned_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
                navigation_states=[s.value for s in outcome.states],
            ),
            elements=scan.elements,
            methods=methods,
        )

        status = (
            GenerationStatus.SUCCESS_WITH_WARNINGS if scan.warnings
            else GenerationStatus.SUCCESS
        )
        result = GenerationResult(
            status=status,
            page_map=page_map,
            reasons=sorted({w.reason for w in scan.warnings}, key=lambda r: r.value),
            warnings=scan.warnings,
        )
        if self.renderer is not None:
            result.rendered = self.renderer.render(page_map)

        logger.info(
            f"[Engine] 完成: {status.value} | 元素 {len(scan.elements)} | "
            f"方法 {len(methods)} | 警告 {len(scan.warnings)}"
        )
        return result

    @staticmethod
    def _failure(error) -> GenerationResult:
        logger.error(f"[Engine] 失敗: {error.reason.value}: {error}")
        return GenerationResult(
            status=GenerationStatus.FAILURE,
            reasons=[error.reason],
            error=str(error),
        )
