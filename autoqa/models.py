"""
Data models and schemas for AutoQA.

These Pydantic models define the test suite produced by the LLM, the provider
selection that routes a request, and the request envelope handed to a runtime.
The shared JSON schema sent to schema-constrained backends lives here too.
"""

from __future__ import annotations
import base64
from enum import Enum
from typing import List, Dict, Optional, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ==================== Test Suite Models ====================

class TestCaseScenario(BaseModel):
    """A single test case: preparation, steps, action and expected result."""
    __test__ = False  # not a pytest test class
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Scenario ID (e.g. TC_001)")
    scenario_name: str = Field(..., alias="scenarioName", description="Short scenario name")
    data_preparation: str = Field(..., alias="dataPreparation", description="Test data preparation")
    steps: str = Field(..., description="Operation steps")
    execution_action: str = Field(..., alias="executionAction", description="Execution action")
    expected_result: str = Field(..., alias="expectedResult", description="Expected result")


class TestSuite(BaseModel):
    """Generated test suite: a feature name and its ordered scenarios."""
    __test__ = False  # not a pytest test class
    model_config = ConfigDict(populate_by_name=True)

    feature_name: str = Field(..., alias="featureName", description="Feature under test")
    scenarios: List[TestCaseScenario] = Field(..., description="Scenarios in generation order")

    def find(self, scenario_id: str) -> Optional[TestCaseScenario]:
        """
        Look up a scenario by id.

        IDs are not guaranteed unique; when the model repeats one, the last
        occurrence wins.
        """
        found = None
        for scenario in self.scenarios:
            if scenario.id == scenario_id:
                found = scenario
        return found

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire form."""
        return self.model_dump(by_alias=True)


# ==================== Provider Models ====================

class ProviderKind(str, Enum):
    """Backends capable of turning a prompt into model text."""
    HOSTED_API = "hosted-api"
    LOCAL_CUSTOM = "local-custom"
    ON_DEVICE = "on-device"


class Availability(str, Enum):
    """Result of a capability probe."""
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class ProviderSelection(BaseModel):
    """Per-request choice of backend with optional overrides."""
    kind: ProviderKind = Field(ProviderKind.HOSTED_API, description="Which backend to call")
    model: Optional[str] = Field(None, description="Model identifier override")
    endpoint_url: Optional[str] = Field(None, description="Endpoint URL override (local-custom only)")


class RequestKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"


class ImageInput(BaseModel):
    """Uploaded image bytes with their MIME type."""
    data: bytes = Field(..., description="Raw image bytes")
    mime_type: str = Field(..., description="MIME type, e.g. image/png")

    @field_validator('data')
    @classmethod
    def validate_non_empty(cls, v):
        if not v:
            raise ValueError("Image data must not be empty")
        return v

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def as_blob(self) -> Dict[str, Any]:
        """Inline-data part understood by the hosted SDK."""
        return {"mime_type": self.mime_type, "data": self.data}


class GenerationRequest(BaseModel):
    """Everything a runtime needs to issue one generation call."""
    kind: RequestKind = RequestKind.TEXT
    prompt: str
    image: Optional[ImageInput] = None
    response_schema: Dict[str, Any] = Field(default_factory=lambda: RESPONSE_SCHEMA)
    provider: ProviderSelection = Field(default_factory=ProviderSelection)

    @model_validator(mode='after')
    def validate_image_matches_kind(self):
        if self.kind == RequestKind.IMAGE and self.image is None:
            raise ValueError("Image requests must carry an image")
        if self.kind == RequestKind.TEXT and self.image is not None:
            raise ValueError("Text requests must not carry an image")
        return self


# ==================== JSON Schema ====================

SCENARIO_FIELDS = ["id", "scenarioName", "dataPreparation", "steps", "executionAction", "expectedResult"]

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "featureName": {"type": "STRING", "description": "被测试的功能名称"},
        "scenarios": {
            "type": "ARRAY",
            "description": "基于需求分析出的测试场景列表",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "STRING", "description": "场景编号 (例如: TC_001)"},
                    "scenarioName": {"type": "STRING", "description": "场景名称简述"},
                    "dataPreparation": {"type": "STRING", "description": "测试数据准备"},
                    "steps": {"type": "STRING", "description": "操作步骤"},
                    "executionAction": {"type": "STRING", "description": "执行动作"},
                    "expectedResult": {"type": "STRING", "description": "预期结果"},
                },
                "required": SCENARIO_FIELDS,
            },
        },
    },
    "required": ["featureName", "scenarios"],
}


def get_test_suite_json_schema() -> Dict[str, Any]:
    """Get the output schema shared by every provider."""
    return RESPONSE_SCHEMA
