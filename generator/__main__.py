"""
CLI 入口

用法:
    # 掃描線上頁面，結果 (JSON) 輸出到 stdout
    python -m generator https://example.com/home

    # 需要登入的頁面（密碼也可用環境變數 POM_PASSWORD）
    python -m generator https://example.com/home \\
        --login-url https://example.com/auth/signin \\
        --username qa@example.com --password secret \\
        --wait-for-login /profiles

    # 掃描存檔的 HTML（不開瀏覽器）
    python -m generator --html saved_page.html

結束碼：0 = 成功（可能含警告），1 = 失敗
"""

import argparse
import json
import os
import sys

from core.html_session import HtmlSnapshotSession
from generator.engine import GeneratorEngine
from generator.schema import Credentials, LoginConfig, WaitForLogin


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m generator",
        description="網頁 Page Object 掃描器：掃描頁面元素並產生操作清單 (JSON)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("url", nargs="?", default="", help="要掃描的頁面 URL")
    parser.add_argument("--html", metavar="FILE", help="掃描存檔的 HTML 檔案")

    login = parser.add_argument_group("登入")
    login.add_argument("--login-url", default="", help="登入頁 URL")
    login.add_argument("--username", default="", help="帳號")
    login.add_argument(
        "--password", default=os.getenv("POM_PASSWORD", ""),
        help="密碼（預設讀取環境變數 POM_PASSWORD）",
    )
    login.add_argument("--username-selector", default="", help="帳號欄位 CSS selector")
    login.add_argument("--password-selector", default="", help="密碼欄位 CSS selector")
    login.add_argument("--submit-selector", default="", help="送出按鈕 CSS selector")

    wait = login.add_mutually_exclusive_group()
    wait.add_argument("--wait-for-login", default="", help="登入完成後 URL 應包含的字串")
    wait.add_argument("--wait-for-selector", default="", help="登入完成後應出現的元素")

    parser.add_argument("--indent", type=int, default=2, help="JSON 縮排 (預設 2)")
    return parser


def login_config_from_args(args) -> LoginConfig | None:
    if not args.username:
        return None
    if args.wait_for_selector:
        wait = WaitForLogin(args.wait_for_selector, kind="selector")
    elif args.wait_for_login:
        wait = WaitForLogin(args.wait_for_login)
    else:
        wait = None
    return LoginConfig(
        credentials=Credentials(args.username, args.password),
        login_url=args.login_url,
        username_selector=args.username_selector,
        password_selector=args.password_selector,
        submit_selector=args.submit_selector,
        wait_for_login=wait,
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.url and not args.html:
        parser.error("請指定 URL 或 --html FILE")

    session = None
    url = args.url
    if args.html:
        session = HtmlSnapshotSession.from_file(args.html, url=args.url or None)
        url = url or next(iter(session.pages))

    engine = GeneratorEngine(session=session, login=login_config_from_args(args))
    result = engine.generate(url)

    json.dump(result.to_dict(), sys.stdout, ensure_ascii=False, indent=args.indent)
    sys.stdout.write("\n")
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
