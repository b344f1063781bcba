"""Test data models and validation."""

import pytest
from pydantic import ValidationError

from autoqa.models import (
    GenerationRequest,
    ImageInput,
    ProviderKind,
    ProviderSelection,
    RequestKind,
    TestCaseScenario,
    TestSuite,
    RESPONSE_SCHEMA,
    SCENARIO_FIELDS,
)


class TestTestSuite:
    """Test TestSuite and TestCaseScenario validation."""

    def test_valid_suite_from_wire_form(self, login_payload):
        suite = TestSuite.model_validate(login_payload)

        assert suite.feature_name == "用户登录"
        assert [s.id for s in suite.scenarios] == ["TC_001", "TC_002", "TC_003"]
        assert suite.scenarios[1].data_preparation == "无"

    def test_snake_case_construction(self):
        scenario = TestCaseScenario(
            id="TC_001",
            scenario_name="场景",
            data_preparation="无",
            steps="步骤",
            execution_action="动作",
            expected_result="结果"
        )
        assert scenario.scenario_name == "场景"

    def test_to_payload_uses_camel_case(self, login_suite, login_payload):
        assert login_suite.to_payload() == login_payload

    def test_missing_scenario_field_fails(self, login_payload):
        del login_payload["scenarios"][0]["expectedResult"]

        with pytest.raises(ValidationError):
            TestSuite.model_validate(login_payload)

    def test_null_field_fails(self, login_payload):
        login_payload["scenarios"][2]["steps"] = None

        with pytest.raises(ValidationError):
            TestSuite.model_validate(login_payload)

    def test_numeric_field_is_not_coerced(self, login_payload):
        login_payload["scenarios"][0]["id"] = 1

        with pytest.raises(ValidationError):
            TestSuite.model_validate(login_payload)

    def test_models_are_not_collected_as_tests(self, login_suite):
        from autoqa.generator import TestSuiteGenerator

        assert TestSuite.__test__ is False
        assert TestCaseScenario.__test__ is False
        assert TestSuiteGenerator.__test__ is False
        assert "__test__" not in login_suite.to_payload()

    def test_find_last_duplicate_wins(self, login_payload):
        login_payload["scenarios"][2]["id"] = "TC_001"
        suite = TestSuite.model_validate(login_payload)

        assert suite.find("TC_001").scenario_name == "密码错误提示"
        assert suite.find("TC_404") is None


class TestGenerationRequest:
    """Test request envelope consistency."""

    def test_defaults(self):
        request = GenerationRequest(prompt="hello")

        assert request.kind == RequestKind.TEXT
        assert request.provider.kind == ProviderKind.HOSTED_API
        assert request.response_schema == RESPONSE_SCHEMA

    def test_image_request_requires_image(self):
        with pytest.raises(ValidationError, match="Image requests must carry an image"):
            GenerationRequest(kind=RequestKind.IMAGE, prompt="flow")

    def test_text_request_rejects_image(self):
        image = ImageInput(data=b"\x89PNG", mime_type="image/png")
        with pytest.raises(ValidationError, match="Text requests must not carry an image"):
            GenerationRequest(kind=RequestKind.TEXT, prompt="text", image=image)

    def test_provider_selection_overrides(self):
        selection = ProviderSelection(kind="local-custom", model="qwen2.5", endpoint_url="http://127.0.0.1:1234/v1/chat/completions")

        assert selection.kind == ProviderKind.LOCAL_CUSTOM
        assert selection.model == "qwen2.5"


class TestImageInput:

    def test_encoding(self):
        image = ImageInput(data=b"abc", mime_type="image/png")

        assert image.to_base64() == "YWJj"
        assert image.as_blob() == {"mime_type": "image/png", "data": b"abc"}

    def test_empty_image_fails(self):
        with pytest.raises(ValidationError, match="Image data must not be empty"):
            ImageInput(data=b"", mime_type="image/png")


class TestResponseSchema:

    def test_all_scenario_fields_required(self):
        items = RESPONSE_SCHEMA["properties"]["scenarios"]["items"]

        assert items["required"] == SCENARIO_FIELDS
        assert set(items["properties"]) == set(SCENARIO_FIELDS)
        assert RESPONSE_SCHEMA["required"] == ["featureName", "scenarios"]
