"""
generator/engine.py 單元測試

端到端：HtmlSnapshotSession / LoginSite → Navigator → PageScanner → Catalog。
"""

import json
from unittest.mock import patch

import pytest

from conftest import BASE_URL
from core.exceptions import FailureReason, NavigationFailure
from core.html_session import HtmlSnapshotSession
from generator.engine import GeneratorEngine
from generator.schema import (
    GenerationStatus,
    LoginConfig,
    OperationKind,
    PageObjectMap,
)

SIGNUP_URL = f"{BASE_URL}/signup"
SIGNUP_HTML = """
<html><head><title>Sign up</title></head><body>
  <form>
    <input type="email" data-test-id="email-field" placeholder="Email">
    <button data-test-id="submit-button" type="submit">Submit</button>
  </form>
</body></html>
"""

LEADERBOARD_URL = f"{BASE_URL}/games"
LEADERBOARD_HTML = """
<html><head><title>Games</title></head><body>
  <nav><a href="/leaderboard">Leaderboard</a></nav>
  <section>
    <button>Leaderboard</button>
  </section>
</body></html>
"""


def _engine_for(pages, **kwargs):
    session = HtmlSnapshotSession(pages)
    return GeneratorEngine(session=session, sleep=lambda _: None, **kwargs), session


class UpperCaseRenderer:
    """測試用 renderer：只列出方法名稱"""

    def render(self, page_map):
        return "\n".join(m.name.upper() for m in page_map.methods)


@pytest.mark.unit
class TestGenerate:
    """靜態頁面的產生流程"""

    @pytest.mark.unit
    def test_email_and_submit(self):
        """Email 欄位與送出按鈕產生對應的方法與 selector"""
        engine, _ = _engine_for({SIGNUP_URL: SIGNUP_HTML})
        result = engine.generate(SIGNUP_URL)

        assert result.status is GenerationStatus.SUCCESS
        page = result.page_map
        names = {m.name: m for m in page.methods}
        assert "typeEmailField" in names
        assert "clickSubmitButton" in names

        email = page.element(names["typeEmailField"].owner_element_id)
        submit = page.element(names["clickSubmitButton"].owner_element_id)
        assert email.primary_selector == '[data-test-id="email-field"]'
        assert submit.primary_selector == '[data-test-id="submit-button"]'
        assert names["typeEmailField"].operation is OperationKind.TYPE

    @pytest.mark.unit
    def test_duplicate_labels_get_numbered_methods(self):
        """同名元素的方法名稱依序編號"""
        engine, _ = _engine_for({LEADERBOARD_URL: LEADERBOARD_HTML})
        page = engine.generate(LEADERBOARD_URL).page_map

        link, button = page.elements
        assert [m.name for m in page.methods_for(link.id)][0] == "clickLeaderboard"
        assert [m.name for m in page.methods_for(button.id)][0] == "clickLeaderboard2"
        assert link.primary_selector != button.primary_selector

    @pytest.mark.unit
    def test_metadata(self):
        """執行資訊"""
        engine, _ = _engine_for({SIGNUP_URL: SIGNUP_HTML})
        meta = engine.generate(SIGNUP_URL).page_map.metadata
        assert meta.target_url == SIGNUP_URL
        assert meta.final_url == SIGNUP_URL
        assert meta.page_title == "Sign up"
        assert meta.element_count == 2
        assert meta.authentication_used is False
        assert meta.navigation_states == ["START", "NAVIGATING", "ARRIVED"]
        assert meta.scanned_at.endswith("+00:00")

    @pytest.mark.unit
    def test_unique_selectors_and_method_names(self):
        """selector 與方法名稱都不重複"""
        engine, _ = _engine_for({LEADERBOARD_URL: LEADERBOARD_HTML})
        page = engine.generate(LEADERBOARD_URL).page_map
        selectors = [e.primary_selector for e in page.elements]
        names = [m.name for m in page.methods]
        assert len(selectors) == len(set(selectors))
        assert len(names) == len(set(names))
        assert all(page.element(m.owner_element_id) for m in page.methods)

    @pytest.mark.unit
    def test_rescan_is_deterministic(self):
        """同一頁掃兩次結果相同"""
        engine, _ = _engine_for({SIGNUP_URL: SIGNUP_HTML})
        first = engine.generate(SIGNUP_URL).page_map.to_dict()
        second = engine.generate(SIGNUP_URL).page_map.to_dict()
        for data in (first, second):
            data["metadata"].pop("scanned_at")
        assert first == second

    @pytest.mark.unit
    def test_result_is_json_serializable(self):
        """結果可轉成 JSON 並還原"""
        engine, _ = _engine_for({SIGNUP_URL: SIGNUP_HTML})
        data = json.loads(json.dumps(engine.generate(SIGNUP_URL).to_dict()))
        assert data["status"] == "success"
        restored = PageObjectMap.from_dict(data["page_map"])
        assert [m.name for m in restored.methods][0] == "typeEmailField"

    @pytest.mark.unit
    def test_renderer_output_attached(self):
        """有 renderer 時附上輸出"""
        engine, _ = _engine_for({SIGNUP_URL: SIGNUP_HTML}, renderer=UpperCaseRenderer())
        result = engine.generate(SIGNUP_URL)
        assert result.rendered.splitlines()[0] == "TYPEEMAILFIELD"

    @pytest.mark.unit
    def test_warnings_downgrade_status(self):
        """有元素層級警告時狀態降為 success_with_warnings"""
        url = f"{BASE_URL}/dup"
        engine, _ = _engine_for({url: "<b tabindex='0'>x</b><p><b tabindex='0'>y</b></p>"})
        result = engine.generate(url)
        assert result.ok
        assert result.status is GenerationStatus.SUCCESS_WITH_WARNINGS
        assert result.reasons == [FailureReason.SELECTOR_COLLISION_UNRESOLVED]
        assert len(result.page_map.elements) == 2
        assert result.page_map.metadata.element_count == 2


@pytest.mark.unit
class TestAuthenticatedGenerate:
    """需要登入的頁面"""

    @pytest.mark.unit
    def test_login_then_scan_target(self, login_site, credentials):
        """登入後掃描的是目標頁"""
        login = LoginConfig(
            credentials=credentials,
            login_url=f"{BASE_URL}/auth/signin",
            wait_for_login="/profiles",
        )
        engine = GeneratorEngine(session=login_site, login=login, sleep=lambda _: None)
        result = engine.generate(f"{BASE_URL}/home")

        assert result.status is GenerationStatus.SUCCESS
        meta = result.page_map.metadata
        assert meta.authentication_used is True
        assert meta.final_url == f"{BASE_URL}/home"
        assert meta.page_description == "Team dashboard"
        names = [m.name for m in result.page_map.methods]
        assert "typeSearchPlayers" in names
        assert "clickRefresh" in names
        # 登入頁的欄位不會出現在結果中
        assert not any("Password" in n for n in names)


@pytest.mark.unit
class TestFailures:
    """失敗結果與瀏覽器生命週期"""

    @pytest.mark.unit
    def test_navigation_failure_produces_no_catalog(self, login_site):
        """導航失敗時不產生 page map"""
        result = GeneratorEngine(session=login_site).generate(f"{BASE_URL}/home")
        assert result.status is GenerationStatus.FAILURE
        assert not result.ok
        assert result.page_map is None
        assert result.reasons == [FailureReason.NAVIGATION_FAILURE]
        assert "沒有登入設定" in result.error

    @pytest.mark.unit
    def test_invalid_config(self, monkeypatch):
        """設定無效時不啟動瀏覽器"""
        monkeypatch.setattr("config.config.Config.MAX_REDIRECT_OBSERVATIONS", 0)
        with patch("generator.engine.SeleniumSession") as session_cls:
            result = GeneratorEngine().generate(SIGNUP_URL)
        session_cls.assert_not_called()
        assert result.reasons == [FailureReason.INVALID_CONFIG]

    @pytest.mark.unit
    def test_owned_session_closed(self, login_site):
        """engine 自己開的瀏覽器用完關閉"""
        login_site.authenticated = True
        with patch("generator.engine.SeleniumSession") as session_cls, \
                patch.object(login_site, "close", wraps=login_site.close) as close:
            session_cls.return_value.open.return_value = login_site
            result = GeneratorEngine(sleep=lambda _: None).generate(f"{BASE_URL}/home")
        assert result.ok
        close.assert_called_once()

    @pytest.mark.unit
    def test_owned_session_closed_on_failure(self, login_site):
        """失敗時也關閉自己開的瀏覽器"""
        with patch("generator.engine.SeleniumSession") as session_cls, \
                patch.object(login_site, "close") as close:
            session_cls.return_value.open.return_value = login_site
            result = GeneratorEngine().generate(f"{BASE_URL}/home")
        assert not result.ok
        close.assert_called_once()

    @pytest.mark.unit
    def test_caller_session_left_open(self):
        """呼叫端的 session 不由 engine 關閉"""
        session = HtmlSnapshotSession({SIGNUP_URL: SIGNUP_HTML})
        with patch.object(session, "close") as close:
            GeneratorEngine(session=session).generate(SIGNUP_URL)
        close.assert_not_called()

    @pytest.mark.unit
    def test_browser_start_failure_is_reported(self):
        """瀏覽器啟動失敗回報為 failure，不往外拋"""
        with patch("generator.engine.SeleniumSession") as session_cls:
            session_cls.return_value.open.side_effect = NavigationFailure(
                "chrome", "無法啟動瀏覽器: no chrome",
            )
            result = GeneratorEngine().generate(SIGNUP_URL)
        assert result.status is GenerationStatus.FAILURE
        assert result.reasons == [FailureReason.NAVIGATION_FAILURE]
        assert "無法啟動瀏覽器" in result.error
        session_cls.return_value.close.assert_not_called()

    @pytest.mark.unit
    def test_invalid_login_selector_is_reported(self, login_site, credentials):
        """登入欄位提示語法錯誤時回報 LoginFieldNotFound"""
        login = LoginConfig(
            credentials=credentials,
            login_url=f"{BASE_URL}/auth/signin",
            username_selector="input[",
        )
        result = GeneratorEngine(session=login_site, login=login).generate(f"{BASE_URL}/home")
        assert result.status is GenerationStatus.FAILURE
        assert result.reasons == [FailureReason.LOGIN_FIELD_NOT_FOUND]
        assert "input[" in result.error

    @pytest.mark.unit
    def test_browser_setting_ignored_for_caller_session(self, monkeypatch):
        """使用呼叫端 session 時不檢查 BROWSER"""
        monkeypatch.setattr("config.config.Config.BROWSER", "netscape")
        engine, _ = _engine_for({SIGNUP_URL: SIGNUP_HTML})
        assert engine.generate(SIGNUP_URL).status is GenerationStatus.SUCCESS

    @pytest.mark.unit
    def test_browser_setting_checked_for_owned_session(self, monkeypatch):
        """自己開瀏覽器時 BROWSER 無效就失敗"""
        monkeypatch.setattr("config.config.Config.BROWSER", "netscape")
        with patch("generator.engine.SeleniumSession") as session_cls:
            result = GeneratorEngine().generate(SIGNUP_URL)
        session_cls.assert_not_called()
        assert result.reasons == [FailureReason.INVALID_CONFIG]
