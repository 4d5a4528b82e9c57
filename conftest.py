"""
pytest 全域 fixtures

提供：
- 所有測試自動把等待時間調到最短（不需要真的等）
- html_session：把一段 HTML 包成 HtmlSnapshotSession
- login_site：需要登入的模擬網站（/home → /auth/signin → /profiles）
"""

from urllib.parse import urljoin

import pytest

from config.config import Config
from core.html_session import HtmlSnapshotSession
from generator.schema import Credentials

BASE_URL = "https://app.test"
VALID_USER = "qa@example.com"
VALID_PASSWORD = "s3cret"

SIGNIN_HTML = """
<html><head><title>Sign in</title></head><body>
  <form action="/auth/session" method="post">
    <input type="email" name="email" placeholder="Email">
    <input type="password" name="password" placeholder="Password">
    <button type="submit">Sign in</button>
  </form>
</body></html>
"""

HOME_HTML = """
<html><head><title>Home</title>
  <meta name="description" content="Team dashboard">
</head><body>
  <nav>
    <a href="/home">Home</a>
    <a href="/profiles">Profiles</a>
  </nav>
  <main>
    <input type="search" aria-label="Search players">
    <button data-testid="refresh">Refresh</button>
  </main>
</body></html>
"""

PROFILES_HTML = """
<html><head><title>Profiles</title></head><body>
  <h1>Profiles</h1>
  <a href="/home">Back home</a>
</body></html>
"""


class LoginSite(HtmlSnapshotSession):
    """
    需要登入的模擬網站

    未登入時受保護頁面一律轉址到 /auth/signin；
    帳密正確就登入並導向 post_login_path。
    """

    protected = ("/home", "/profiles")

    def __init__(self, post_login_path: str = "/profiles", **kwargs):
        super().__init__(
            {
                f"{BASE_URL}/home": HOME_HTML,
                f"{BASE_URL}/auth/signin": SIGNIN_HTML,
                f"{BASE_URL}/profiles": PROFILES_HTML,
            },
            **kwargs,
        )
        self.post_login_path = post_login_path
        self.authenticated = False
        self.submissions: list[dict] = []

    def redirect_for(self, url):
        if not self.authenticated and any(url.endswith(p) for p in self.protected):
            return "/auth/signin"
        return super().redirect_for(url)

    def handle_submit(self, form, values):
        self.submissions.append(values)
        if values.get("email") == VALID_USER and values.get("password") == VALID_PASSWORD:
            self.authenticated = True
            self.navigate(urljoin(self.current_url(), self.post_login_path))
        else:
            self.navigate(f"{BASE_URL}/auth/signin")


# ── 框架初始化 ──

def pytest_configure(config):
    """註冊自訂 marker"""
    config.addinivalue_line("markers", "unit: 不需要瀏覽器的單元測試")


# ── 全域設定 ──

@pytest.fixture(autouse=True)
def fast_config(monkeypatch):
    """測試時不做固定等待，逾時也縮到最短"""
    monkeypatch.setattr(Config, "SETTLE_DELAY", 0.0)
    monkeypatch.setattr(Config, "RESOLVE_SETTLE_DELAY", 0.0)
    monkeypatch.setattr(Config, "NAVIGATION_TIMEOUT", 0.2)
    monkeypatch.setattr(Config, "LOGIN_TIMEOUT", 0.2)
    return Config


# ── Sessions ──

@pytest.fixture
def html_session():
    """
    把 HTML 片段包成已載入的 session。

    用法：
        session = html_session("<button>OK</button>")
    """
    def _make(html: str, url: str = f"{BASE_URL}/page") -> HtmlSnapshotSession:
        session = HtmlSnapshotSession({url: html})
        session.navigate(url)
        return session

    return _make


@pytest.fixture
def make_login_site():
    """建立模擬網站，可指定登入後導向的路徑"""
    return LoginSite


@pytest.fixture
def login_site() -> LoginSite:
    return LoginSite()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(VALID_USER, VALID_PASSWORD)
