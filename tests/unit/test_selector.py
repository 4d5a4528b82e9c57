"""
scanner/selector.py 單元測試

驗證策略優先序、不穩定 id、衝突升級與編號、over-broad 重查、消失的 node。
"""

import pytest

from core.exceptions import ElementVanishedError
from generator.schema import LocatorStrategy
from scanner.selector import SelectorSynthesizer, css_string, id_selector, is_volatile_id


def _synth(session, node, synthesizer=None):
    synthesizer = synthesizer or SelectorSynthesizer(session, settle_delay=0)
    tag = session.tag_name(node)
    return synthesizer.synthesize(node, tag, dict(node.attrs))


@pytest.mark.unit
class TestIdRules:
    """id 規則"""

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["hjSafeContext_123", "_hjTemp", "12345", "j_idt42"])
    def test_volatile_ids(self, value):
        """產生式 id 視為不穩定"""
        assert is_volatile_id(value)
        assert id_selector(value) is None

    @pytest.mark.unit
    def test_plain_id(self):
        """一般 id 用 #id"""
        assert id_selector("username") == "#username"

    @pytest.mark.unit
    def test_id_with_trailing_counter_uses_prefix(self):
        """結尾是流水號的 id 用前綴比對"""
        assert id_selector("row-20240101") == '[id^="row-"]'

    @pytest.mark.unit
    def test_non_identifier_id_uses_attribute(self):
        """不是合法識別字的 id 用屬性 selector"""
        assert id_selector("user.name") == '[id="user.name"]'
        assert id_selector("1st") is not None

    @pytest.mark.unit
    def test_css_string_escapes_quotes(self):
        """CSS 字串跳脫引號"""
        assert css_string('say "hi"') == '"say \\"hi\\""'


@pytest.mark.unit
class TestStrategyPriority:
    """策略優先序"""

    @pytest.mark.unit
    def test_test_id_wins(self, html_session):
        """test id 優先"""
        session = html_session(
            '<input id="email" name="email" aria-label="Email" data-test-id="email-field">'
        )
        locator = _synth(session, session.find_all("input")[0])
        assert locator.strategy is LocatorStrategy.TEST_ID
        assert locator.primary == '[data-test-id="email-field"]'
        assert locator.candidates == [
            (LocatorStrategy.TEST_ID, '[data-test-id="email-field"]'),
            (LocatorStrategy.ARIA_LABEL, '[aria-label="Email"]'),
            (LocatorStrategy.DOM_ID, "#email"),
            (LocatorStrategy.NAME, 'input[name="email"]'),
        ]

    @pytest.mark.unit
    def test_aria_label_before_id(self, html_session):
        """aria-label 優先於 id"""
        session = html_session('<button id="close" aria-label="Close dialog">x</button>')
        locator = _synth(session, session.find_all("button")[0])
        assert locator.primary == '[aria-label="Close dialog"]'

    @pytest.mark.unit
    def test_data_selenium_is_test_id(self, html_session):
        """data-selenium 也算 test id"""
        session = html_session('<button id="save" data-selenium="save-btn">Save</button>')
        locator = _synth(session, session.find_all("button")[0])
        assert locator.strategy is LocatorStrategy.TEST_ID
        assert locator.primary == '[data-selenium="save-btn"]'

    @pytest.mark.unit
    def test_volatile_id_skipped_for_name(self, html_session):
        """不穩定 id 跳過，改用 name"""
        session = html_session('<input id="hj123" name="q" type="search">')
        locator = _synth(session, session.find_all("input")[0])
        assert locator.strategy is LocatorStrategy.NAME
        assert locator.primary == 'input[name="q"][type="search"]'

    @pytest.mark.unit
    def test_structural_fallback(self, html_session):
        """沒有穩定屬性時用結構路徑"""
        session = html_session(
            "<html><body><div><a href='/x'>A</a><a href='/y'>B</a></div></body></html>"
        )
        node = session.find_all("a")[1]
        locator = _synth(session, node)
        assert locator.strategy is LocatorStrategy.STRUCTURAL
        assert session.find_all(locator.primary) == [node]

    @pytest.mark.unit
    def test_deterministic_for_unchanged_dom(self, html_session):
        """DOM 不變時結果相同"""
        html = '<html><body><button name="go">Go</button><button>Stop</button></body></html>'
        first = html_session(html)
        second = html_session(html)
        primaries = []
        for session in (first, second):
            synth = SelectorSynthesizer(session, settle_delay=0)
            primaries.append([_synth(session, n, synth).primary for n in session.find_all("button")])
        assert primaries[0] == primaries[1]


@pytest.mark.unit
class TestCollisions:
    """selector 衝突"""

    @pytest.mark.unit
    def test_duplicate_test_id_escalates(self, html_session):
        """重複的 test id 升級到下一個策略"""
        session = html_session(
            '<html><body><button data-testid="save">A</button>'
            '<button data-testid="save" id="save2">B</button></body></html>'
        )
        synth = SelectorSynthesizer(session, settle_delay=0)
        a, b = session.find_all("button")
        first = _synth(session, a, synth)
        second = _synth(session, b, synth)
        assert first.strategy is LocatorStrategy.STRUCTURAL
        assert second.primary == "#save2"
        assert first.primary != second.primary

    @pytest.mark.unit
    def test_already_assigned_selector_escalates(self, html_session):
        """已被使用的 selector 不重複分配"""
        session = html_session('<html><body><input name="q"></body></html>')
        synth = SelectorSynthesizer(session, settle_delay=0)
        synth.assigned.add('input[name="q"]')
        locator = _synth(session, session.find_all("input")[0], synth)
        assert locator.strategy is LocatorStrategy.STRUCTURAL

    @pytest.mark.unit
    def test_disambiguator_when_all_strategies_collide(self, html_session):
        """所有策略都衝突時用編號"""
        # 沒有 <html> 根節點時，最上層 <b> 的結構路徑也會對應到 <p> 裡的 <b>
        session = html_session("<b>x</b><p><b>y</b></p>")
        synth = SelectorSynthesizer(session, settle_delay=0)
        locators = [_synth(session, n, synth) for n in session.find_all("b")]
        assert locators[0].strategy is LocatorStrategy.DISAMBIGUATED
        assert locators[0].index == 0
        assert locators[0].primary == "b:nth-of-type(1) >> nth=0"
        assert locators[1].strategy is LocatorStrategy.STRUCTURAL
        assert locators[0].primary != locators[1].primary

    @pytest.mark.unit
    def test_over_broad_match_rechecked_once(self, html_session):
        """匹配過多時等待後重查一次"""
        session = html_session('<html><body><input name="q"><input name="q"></body></html>')
        sleeps = []
        synth = SelectorSynthesizer(session, settle_delay=0.5, sleep=sleeps.append)
        _synth(session, session.find_all("input")[0], synth)
        assert sleeps == [0.5]


@pytest.mark.unit
class TestVanished:
    """消失的 node"""

    @pytest.mark.unit
    def test_node_removed_from_dom(self, html_session):
        """node 已從 DOM 移除"""
        session = html_session('<html><body><button data-testid="gone">x</button></body></html>')
        node = session.find_all("button")[0]
        node.extract()
        with pytest.raises(ElementVanishedError):
            _synth(session, node)

    @pytest.mark.unit
    def test_replaced_document(self, html_session):
        """文件整個被替換"""
        session = html_session('<html><body><button data-testid="b">x</button></body></html>')
        node = session.find_all("button")[0]
        session.navigate(session.current_url())
        with pytest.raises(ElementVanishedError):
            _synth(session, node)
