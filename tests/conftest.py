"""Pytest configuration and fixtures for AutoQA tests."""

import json

import pytest

from autoqa.config import InMemorySettingsStore
from autoqa.models import TestSuite, TestCaseScenario
from autoqa.runtime import MockLLMRuntime


LOGIN_PAYLOAD = {
    "featureName": "用户登录",
    "scenarios": [
        {
            "id": "TC_001",
            "scenarioName": "正确邮箱和密码登录成功",
            "dataPreparation": "1. 已注册账号 user@example.com\n2. 密码 Passw0rd!",
            "steps": "1. 打开登录页\n2. 输入邮箱和密码",
            "executionAction": "点击登录按钮",
            "expectedResult": "1. 登录成功\n2. 跳转到首页"
        },
        {
            "id": "TC_002",
            "scenarioName": "邮箱格式错误",
            "dataPreparation": "无",
            "steps": "1. 打开登录页\n2. 输入邮箱 user@@example",
            "executionAction": "点击登录按钮",
            "expectedResult": "提示“邮箱格式不正确”"
        },
        {
            "id": "TC_003",
            "scenarioName": "密码错误提示",
            "dataPreparation": "已注册账号 user@example.com",
            "steps": "1. 打开登录页\n2. 输入正确邮箱和错误密码",
            "executionAction": "点击登录按钮",
            "expectedResult": "提示“密码错误”，停留在登录页"
        }
    ]
}


@pytest.fixture
def login_payload():
    return json.loads(json.dumps(LOGIN_PAYLOAD))


@pytest.fixture
def login_json(login_payload):
    return json.dumps(login_payload, ensure_ascii=False)


@pytest.fixture
def login_suite(login_payload):
    return TestSuite.model_validate(login_payload)


@pytest.fixture
def make_suite():
    """Build a suite with ``n`` generated scenarios."""
    def _make(n, feature="功能"):
        return TestSuite(
            feature_name=feature,
            scenarios=[
                TestCaseScenario(
                    id=f"TC_{i:03d}",
                    scenario_name=f"场景 {i}",
                    data_preparation="无",
                    steps="1. 步骤",
                    execution_action="执行",
                    expected_result="成功"
                )
                for i in range(1, n + 1)
            ]
        )
    return _make


@pytest.fixture
def settings():
    return InMemorySettingsStore()


@pytest.fixture
def mock_runtime(login_json):
    """Mock runtime that wraps the login payload in reasoning and prose, like a local model."""
    return MockLLMRuntime({
        "用户登录": f"<think>需求包含 {{邮箱}} 校验</think>\n好的，以下是测试用例：\n```json\n{login_json}\n```\n希望对你有帮助。"
    })


@pytest.fixture
def no_credential_env(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
