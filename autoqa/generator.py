"""
Test suite generation workflow.

Orchestrates prompt building -> runtime dispatch -> response parsing for both
input modes (requirement text and flowchart image). Capability checks run
before dispatch so unsupported requests never reach the network.
"""

from __future__ import annotations
from typing import Optional
import logging

from .config import SettingsStore
from .exceptions import InvalidInputError, UnsupportedCapabilityError
from .models import (
    GenerationRequest,
    ImageInput,
    ProviderSelection,
    RequestKind,
    TestSuite,
    get_test_suite_json_schema,
)
from .prompts import build_flowchart_prompt, build_requirements_prompt
from .runtime import LLMRuntime, RuntimeFactory
from .validation import ResponseParser

logger = logging.getLogger(__name__)


class TestSuiteGenerator:
    """
    Single entry point for turning user input into a validated TestSuite.

    Every call is independent: configuration is read from the settings store
    when the request is built, and nothing is cached between requests.
    """

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        settings: SettingsStore,
        factory: Optional[RuntimeFactory] = None,
        parser: Optional[ResponseParser] = None
    ):
        self.factory = factory or RuntimeFactory(settings)
        self.parser = parser or ResponseParser()

    def generate_from_requirements(
        self,
        requirements: str,
        selection: Optional[ProviderSelection] = None
    ) -> TestSuite:
        """
        Generate a test suite from natural-language requirements.

        Raises:
            InvalidInputError: Requirements are blank
            AutoQAError: Any classified provider or parse failure
        """
        selection = selection or ProviderSelection()
        prompt = build_requirements_prompt(requirements)

        request = GenerationRequest(
            kind=RequestKind.TEXT,
            prompt=prompt,
            response_schema=get_test_suite_json_schema(),
            provider=selection,
        )
        return self._run(request)

    def generate_from_flowchart(
        self,
        image: ImageInput,
        additional_text: str = "",
        selection: Optional[ProviderSelection] = None
    ) -> TestSuite:
        """Generate a path-coverage test suite from a flowchart image."""
        selection = selection or ProviderSelection()
        if not image.mime_type.startswith("image/"):
            raise InvalidInputError("请上传有效的图片文件 (JPG, PNG, WebP)。")

        request = GenerationRequest(
            kind=RequestKind.IMAGE,
            prompt=build_flowchart_prompt(additional_text),
            image=image,
            response_schema=get_test_suite_json_schema(),
            provider=selection,
        )
        return self._run(request)

    def _run(self, request: GenerationRequest) -> TestSuite:
        kind = request.provider.kind
        logger.info(f"Starting {request.kind.value} generation with provider: {kind.value}")

        runtime = self.factory.create_runtime(request.provider)
        self._check_capability(runtime, request)

        raw = runtime.generate(request)
        logger.debug(f"Raw model output:\n{raw}")

        suite = self.parser.parse(raw)
        logger.info(f"Generated '{suite.feature_name}' with {len(suite.scenarios)} scenarios")
        return suite

    def _check_capability(self, runtime: LLMRuntime, request: GenerationRequest) -> None:
        if request.kind == RequestKind.IMAGE and not runtime.supports_images:
            info = runtime.get_model_info()
            raise UnsupportedCapabilityError(
                f"所选模型 {info.get('name', request.provider.kind.value)} 暂不支持图像识别，请切换到云端模型。"
            )
