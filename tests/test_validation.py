"""Test ResponseParser (JSON extraction and schema validation)."""

import json

import pytest

from autoqa.exceptions import MalformedResponseError
from autoqa.validation import ResponseParser, parse_test_suite


class TestResponseParser:
    """Test parsing of raw model output into a TestSuite."""

    def test_clean_json_parsed_directly(self, login_json):
        suite = parse_test_suite(login_json)

        assert suite.feature_name == "用户登录"
        assert len(suite.scenarios) == 3

    def test_surrounding_prose_ignored(self):
        raw = 'blah blah {"featureName":"X","scenarios":[]}  trailing'

        suite = parse_test_suite(raw)

        assert suite.feature_name == "X"
        assert suite.scenarios == []

    def test_markdown_fence_stripped(self, login_json):
        raw = f"```json\n{login_json}\n```"

        suite = parse_test_suite(raw)

        assert [s.id for s in suite.scenarios] == ["TC_001", "TC_002", "TC_003"]

    def test_reasoning_block_with_braces_dropped(self, login_json):
        raw = f"<think>先确定 {{输入}} 和 {{输出}}</think>\n{login_json}"

        suite = parse_test_suite(raw)

        assert suite.feature_name == "用户登录"

    def test_order_preserved(self, login_payload):
        login_payload["scenarios"].reverse()

        suite = parse_test_suite(json.dumps(login_payload, ensure_ascii=False))

        assert [s.id for s in suite.scenarios] == ["TC_003", "TC_002", "TC_001"]

    def test_missing_scenario_field_rejected(self, login_payload):
        del login_payload["scenarios"][1]["steps"]
        raw = json.dumps(login_payload, ensure_ascii=False)

        with pytest.raises(MalformedResponseError) as exc_info:
            parse_test_suite(raw)

        assert "scenario 1" in exc_info.value.reason
        assert "steps" in exc_info.value.reason

    def test_one_bad_scenario_rejects_whole_suite(self, login_payload):
        login_payload["scenarios"][2]["expectedResult"] = ["not", "a", "string"]

        with pytest.raises(MalformedResponseError):
            parse_test_suite(json.dumps(login_payload, ensure_ascii=False))

    def test_missing_feature_name_rejected(self):
        with pytest.raises(MalformedResponseError, match="模型未返回有效的 JSON 数据"):
            parse_test_suite('{"scenarios": []}')

    def test_scenarios_not_a_list_rejected(self):
        with pytest.raises(MalformedResponseError) as exc_info:
            parse_test_suite('{"featureName": "X", "scenarios": {}}')

        assert "scenarios" in exc_info.value.reason

    def test_top_level_array_rejected(self):
        with pytest.raises(MalformedResponseError):
            parse_test_suite('[{"featureName": "X", "scenarios": []}]')

    def test_no_json_rejected_with_short_snippet(self):
        raw = "抱歉，我无法完成这个请求。" * 20

        with pytest.raises(MalformedResponseError) as exc_info:
            parse_test_suite(raw)

        error = exc_info.value
        assert error.snippet == raw[:50]
        assert len(error.snippet) == 50
        assert raw not in str(error)

    def test_none_rejected(self):
        with pytest.raises(MalformedResponseError):
            ResponseParser().parse(None)
