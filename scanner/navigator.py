"""
Navigator：帶登入處理的頁面導航狀態機

    START → NAVIGATING ─┬─→ ARRIVED
                        └─→ REDIRECTED_TO_LOGIN → AUTHENTICATING
                              → AWAITING_POST_LOGIN_REDIRECT → RENAVIGATING
                              → (回到判斷是否又被導向登入頁)

任何一步失敗都會進入 FAILED 並拋出 NavigationError，整個 run 中止。
登入成功後一律重新前往目標頁，不依賴網站自己導回。

用法：
    from scanner.navigator import Navigator

    nav = Navigator(session, login=LoginConfig(
        credentials=Credentials("qa@example.com", "secret"),
        login_url="https://example.com/auth/signin",
        wait_for_login="/profiles",
    ))
    outcome = nav.navigate("https://example.com/home")
    print(outcome.final_url, outcome.authenticated)
"""

from __future__ import annotations

import re
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable
from urllib.parse import urlsplit

from config.config import Config
from core.exceptions import (
    ElementVanishedError,
    InvalidSelectorError,
    LoginFieldNotFoundError,
    LoginTimeoutError,
    NavigationError,
    NavigationFailure,
    NavigationTimeoutError,
    UnexpectedRedirectLoopError,
)
from generator.schema import LoginConfig
from utils.logger import logger


class NavState(Enum):
    START = "START"
    NAVIGATING = "NAVIGATING"
    ARRIVED = "ARRIVED"
    REDIRECTED_TO_LOGIN = "REDIRECTED_TO_LOGIN"
    AUTHENTICATING = "AUTHENTICATING"
    AWAITING_POST_LOGIN_REDIRECT = "AWAITING_POST_LOGIN_REDIRECT"
    RENAVIGATING = "RENAVIGATING"
    FAILED = "FAILED"


@dataclass
class NavigationOutcome:
    """導航結果"""
    target_url: str
    final_url: str
    authenticated: bool = False
    states: list[NavState] = field(default_factory=list)


# 登入欄位的備援 selector：語意 type → name → 通用
USERNAME_FALLBACKS = (
    'input[type="email"]',
    'input[name="email"]',
    'input[name="username"]',
    'input[autocomplete="username"]',
    'input[id*="email"]',
    'input[id*="username"]',
    'input[type="text"]',
)
PASSWORD_FALLBACKS = (
    'input[type="password"]',
    'input[name="password"]',
    'input[id*="password"]',
)
SUBMIT_FALLBACKS = (
    'button[type="submit"]',
    'input[type="submit"]',
    'button[name="submit"]',
    'button[class*="login"]',
    'button[class*="sign"]',
    "form button",
)

# 與 path 中的完整單字比對；"sign-in" 這類會拆成兩個字，再以相鄰兩字合併比對
AUTH_KEYWORDS = (
    "auth", "authenticate", "authentication", "authorize",
    "login", "signin", "sso", "oauth", "oauth2", "saml",
)

_PATH_TOKEN = re.compile(r"[/_.;-]+")


def url_pattern(url: str) -> str:
    """scheme + host + path，去掉 query / fragment 與結尾的 /"""
    parts = urlsplit(url)
    path = parts.path.rstrip("/") or "/"
    return f"{parts.scheme}://{parts.netloc.lower()}{path}"


class LoginRedirectDetector:
    """
    預設的「被導向登入頁」判斷

    目前 URL 的 path 出現登入關鍵字、而原本要求的 path 沒有；
    或目前正好在設定的 login_url，而要求的不是它。
    """

    def __init__(self, login_url: str = "", keywords: tuple[str, ...] = AUTH_KEYWORDS):
        self.login_url = login_url
        self.keywords = keywords

    def _auth_keywords_in(self, url: str) -> set[str]:
        tokens = [t for t in _PATH_TOKEN.split(urlsplit(url).path.lower()) if t]
        words = set(tokens) | {a + b for a, b in zip(tokens, tokens[1:])}
        return {kw for kw in self.keywords if kw in words}

    def __call__(self, requested_url: str, current_url: str) -> bool:
        if self.login_url:
            login = url_pattern(self.login_url)
            if url_pattern(current_url) == login and url_pattern(requested_url) != login:
                return True
        return bool(self._auth_keywords_in(current_url) - self._auth_keywords_in(requested_url))


class Navigator:
    """把 session 帶到目標頁面，必要時完成登入"""

    def __init__(
        self,
        session,
        login: LoginConfig | None = None,
        is_login_redirect: Callable[[str, str], bool] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session
        self.login = login
        self.is_login_redirect = is_login_redirect or LoginRedirectDetector(
            login.login_url if login else ""
        )
        self._sleep = sleep
        self._states: list[NavState] = []
        self._observations: Counter = Counter()

    @property
    def states(self) -> list[NavState]:
        return list(self._states)

    def navigate(self, target_url: str) -> NavigationOutcome:
        """
        前往 target_url。

        Raises:
            NavigationError 的子類別，此時 states 最後一個是 FAILED
        """
        self._states = [NavState.START]
        self._observations = Counter()
        try:
            return self._run(target_url)
        except NavigationError as e:
            self._enter(NavState.FAILED)
            e.context["states"] = [s.value for s in self._states]
            logger.error(f"[Navigator] 導航失敗: {e}")
            raise

    def _run(self, target_url: str) -> NavigationOutcome:
        authenticated = False
        self._enter(NavState.NAVIGATING)
        self._go(target_url)

        while True:
            current = self.session.current_url()
            if not self.is_login_redirect(target_url, current):
                self._enter(NavState.ARRIVED)
                logger.info(f"[Navigator] 已到達: {current}")
                return NavigationOutcome(
                    target_url=target_url,
                    final_url=current,
                    authenticated=authenticated,
                    states=self.states,
                )

            self._enter(NavState.REDIRECTED_TO_LOGIN)
            logger.info(f"[Navigator] 被導向登入頁: {current}")
            if self.login is None:
                raise NavigationFailure(target_url, f"被導向登入頁 {current}，但沒有登入設定")

            self._enter(NavState.AUTHENTICATING)
            self._authenticate()
            self._enter(NavState.AWAITING_POST_LOGIN_REDIRECT)
            self._await_login(target_url)
            authenticated = True

            self._enter(NavState.RENAVIGATING)
            self._go(target_url)

    # ── 狀態 / 導航基本動作 ──

    def _enter(self, state: NavState) -> None:
        self._states.append(state)
        logger.debug(f"[Navigator] → {state.value}")

    def _go(self, url: str) -> None:
        self.session.navigate(url)
        if not self.session.wait_until(self._has_url, Config.NAVIGATION_TIMEOUT):
            raise NavigationTimeoutError(url, Config.NAVIGATION_TIMEOUT)
        self._settle()
        self._observe()

    def _has_url(self) -> bool:
        return self.session.current_url() not in ("", "about:blank")

    def _settle(self) -> None:
        if Config.SETTLE_DELAY > 0:
            self._sleep(Config.SETTLE_DELAY)

    def _observe(self) -> None:
        pattern = url_pattern(self.session.current_url())
        self._observations[pattern] += 1
        count = self._observations[pattern]
        if count > Config.MAX_REDIRECT_OBSERVATIONS:
            raise UnexpectedRedirectLoopError(pattern, count)

    # ── 登入 ──

    def _authenticate(self) -> None:
        login = self.login
        if login.login_url and (
            url_pattern(self.session.current_url()) != url_pattern(login.login_url)
        ):
            logger.info(f"[Navigator] 前往登入頁: {login.login_url}")
            self._go(login.login_url)

        username = self._find_field("username", login.username_selector, USERNAME_FALLBACKS)
        password = self._find_field("password", login.password_selector, PASSWORD_FALLBACKS)
        submit = self._find_field("submit", login.submit_selector, SUBMIT_FALLBACKS)

        try:
            self.session.type(username, login.credentials.username)
            self.session.type(password, login.credentials.password)
            logger.info("[Navigator] 送出登入表單")
            self.session.click(submit)
        except ElementVanishedError as e:
            raise NavigationFailure(
                self.session.current_url(), f"登入表單在操作中消失: {e}",
            ) from e

    def _find_field(self, name: str, hint: str, fallbacks: tuple[str, ...]):
        selectors = ([hint] if hint else []) + list(fallbacks)
        found = []

        def locate() -> bool:
            for selector in selectors:
                nodes = self.session.find_all(selector)
                if nodes:
                    found.append((selector, nodes[0]))
                    return True
            return False

        try:
            located = self.session.wait_until(locate, Config.NAVIGATION_TIMEOUT)
        except InvalidSelectorError as e:
            raise LoginFieldNotFoundError(name, selectors, str(e)) from e
        if not located:
            raise LoginFieldNotFoundError(name, selectors)
        selector, node = found[-1]
        logger.debug(f"[Navigator] 登入欄位 {name}: {selector}")
        return node

    def _await_login(self, target_url: str) -> None:
        wait = self.login.wait_for_login
        session = self.session

        if wait is None:
            expected = "離開登入頁"
            met = session.wait_until(
                lambda: not self.is_login_redirect(target_url, session.current_url()),
                Config.LOGIN_TIMEOUT,
            )
        elif wait.kind == "url":
            expected = wait.value
            met = session.wait_until(
                lambda: wait.value in session.current_url(), Config.LOGIN_TIMEOUT,
            )
        else:
            expected = wait.value
            try:
                met = session.wait_until(
                    lambda: bool(session.find_all(wait.value)), Config.LOGIN_TIMEOUT,
                )
            except InvalidSelectorError as e:
                raise NavigationFailure(session.current_url(), f"登入完成條件無效: {e}") from e

        if not met:
            raise LoginTimeoutError(expected, session.current_url(), Config.LOGIN_TIMEOUT)

        logger.info(f"[Navigator] 登入完成: {session.current_url()}")
        self._settle()
        self._observe()
