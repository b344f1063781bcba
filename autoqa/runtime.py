"""
Pluggable LLM runtime abstraction for AutoQA.

Provides one call contract over the hosted Gemini API, a local
OpenAI-compatible server (Ollama, LM Studio) and an on-device MLX model.
Runtimes only transport and classify failures; parsing happens downstream.
"""

from __future__ import annotations
from typing import Callable, Optional, Dict, Any, List, Protocol
import logging

import requests
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .config import (
    SettingsStore,
    resolve_credential,
    resolve_hosted_model,
    resolve_local_endpoint,
    resolve_on_device_model,
    DEFAULT_HOSTED_MODEL,
    DEFAULT_LOCAL_MODEL,
    DEFAULT_LOCAL_URL,
)
from .device_runtime import OnDeviceRuntime, probe_on_device
from .exceptions import (
    ConfigurationError,
    MalformedResponseError,
    MissingCredentialError,
    ProviderConnectionError,
    ProviderError,
    QuotaExceededError,
    UnsupportedCapabilityError,
)
from .models import Availability, GenerationRequest, ProviderKind, ProviderSelection
from .prompts import LOCAL_SYSTEM_INSTRUCTION

logger = logging.getLogger(__name__)


class LLMRuntime(Protocol):
    """Protocol for all LLM runtime implementations."""

    supports_images: bool
    schema_constrained: bool

    def generate(self, request: GenerationRequest) -> str:
        """Issue the call and return the raw model text."""
        ...

    def is_available(self) -> bool:
        """Check if this runtime is currently available."""
        ...

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the current model."""
        ...


class HostedAPIRuntime:
    """
    Google Gemini through the google-genai client.

    Output is constrained by the response schema, so the returned text is
    expected to be a clean JSON document.
    """

    supports_images = True
    schema_constrained = True

    def __init__(self, api_key: Optional[str], model: str = DEFAULT_HOSTED_MODEL, name: str = "gemini"):
        if not api_key:
            raise MissingCredentialError()
        self.api_key = api_key
        self.model = model
        self.name = name

    def build_contents(self, request: GenerationRequest) -> List[Any]:
        """Image part first, then the instruction text."""
        contents: List[Any] = []
        if request.image is not None:
            contents.append(types.Part.from_bytes(**request.image.as_blob()))
        contents.append(request.prompt)
        return contents

    def generate(self, request: GenerationRequest) -> str:
        """Generate response with the schema constraint attached."""
        try:
            client = genai.Client(api_key=self.api_key)
            response = client.models.generate_content(
                model=self.model,
                contents=self.build_contents(request),
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=request.response_schema,
                ),
            )
            return response.text

        except genai_errors.APIError as e:
            if e.code == 429:
                logger.warning(f"{self.name} quota exhausted: {e}")
                raise QuotaExceededError(str(e))
            logger.error(f"{self.name} generation failed: {e}")
            raise ProviderError(f"调用 {self.name} ({self.model}) 失败: {e}")
        except Exception as e:
            logger.error(f"{self.name} generation failed: {e}")
            raise ProviderError(f"调用 {self.name} ({self.model}) 失败: {e}")

    def is_available(self) -> bool:
        return bool(self.api_key)

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "model": self.model,
            "type": "hosted-api"
        }


class LocalCustomRuntime:
    """
    Local OpenAI-compatible chat-completions server (Ollama, LM Studio, ...).

    The configured URL is the full chat-completions endpoint and is posted
    to as-is. No timeout is set here; the transport default applies.
    """

    supports_images = False
    schema_constrained = False

    def __init__(
        self,
        url: str = DEFAULT_LOCAL_URL,
        model: str = DEFAULT_LOCAL_MODEL,
        temperature: float = 0.3,
        name: str = "local-custom"
    ):
        self.url = url
        self.model = model
        self.temperature = temperature
        self.name = name

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": LOCAL_SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt}
            ],
            "temperature": self.temperature,
        }

    def generate(self, request: GenerationRequest) -> str:
        """Generate response using the chat-completions endpoint."""
        if request.image is not None:
            raise UnsupportedCapabilityError("自定义本地模型暂不支持图像识别。")

        logger.info(f"POST {self.url} (model={self.model})")
        try:
            response = requests.post(
                self.url,
                json=self.build_payload(request.prompt),
                headers={"Content-Type": "application/json"},
            )
        except requests.RequestException as e:
            logger.error(f"Local model unreachable at {self.url}: {e}")
            raise ProviderConnectionError(
                f"连接本地模型失败: {e}。请检查本地模型服务是否开启并允许 CORS 跨域请求。"
            )

        if not 200 <= response.status_code < 300:
            raise ProviderError(f"本地服务响应异常: {response.status_code}。请确保 {self.url} 已启动。")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(f"Unexpected chat-completions body from {self.url}: {e}")
            raise MalformedResponseError(response.text, "not a chat-completions response")

        if not isinstance(content, str):
            raise MalformedResponseError(response.text, "message content is not text")
        return content

    def models_url(self) -> str:
        base = self.url.rstrip('/')
        if base.endswith("/chat/completions"):
            base = base[:-len("/chat/completions")]
        return f"{base}/models"

    def is_available(self) -> bool:
        """Check if the server answers on its models listing."""
        try:
            response = requests.get(self.models_url(), timeout=5)
            return response.status_code == 200
        except requests.RequestException:
            return False

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "model": self.model,
            "url": self.url,
            "type": "openai-compatible"
        }


RuntimeBuilder = Callable[[ProviderSelection], LLMRuntime]


class RuntimeFactory:
    """Creates the runtime for a provider selection from the settings store."""

    def __init__(self, settings: SettingsStore):
        self.settings = settings
        self._overrides: Dict[ProviderKind, RuntimeBuilder] = {}
        # Loaded MLX models are expensive; keep one runtime per model path
        self._device_runtimes: Dict[str, OnDeviceRuntime] = {}

    def register_runtime(self, kind: ProviderKind, builder: RuntimeBuilder) -> None:
        """Replace how a provider kind is built (tests, custom deployments)."""
        self._overrides[kind] = builder

    def create_runtime(self, selection: ProviderSelection) -> LLMRuntime:
        """
        Build the runtime for a selection.

        Raises:
            MissingCredentialError: Hosted API selected without a credential
            UnsupportedCapabilityError: On-device selected but not available
        """
        kind = selection.kind
        if kind in self._overrides:
            return self._overrides[kind](selection)

        if kind == ProviderKind.HOSTED_API:
            return HostedAPIRuntime(
                api_key=resolve_credential(self.settings),
                model=resolve_hosted_model(self.settings, selection),
            )

        if kind == ProviderKind.LOCAL_CUSTOM:
            url, model = resolve_local_endpoint(self.settings, selection)
            return LocalCustomRuntime(url=url, model=model)

        if kind == ProviderKind.ON_DEVICE:
            availability = self.probe(kind)
            if availability != Availability.AVAILABLE:
                raise UnsupportedCapabilityError(
                    f"设备端模型不可用 ({availability.value})。请选择云端或本地服务模型。"
                )
            model_path = resolve_on_device_model(self.settings, selection)
            if model_path not in self._device_runtimes:
                self._device_runtimes[model_path] = OnDeviceRuntime(model_path)
            return self._device_runtimes[model_path]

        raise ConfigurationError(f"Unknown provider kind: {kind}")

    def probe(self, kind: ProviderKind) -> Availability:
        """Selection-time availability gate. Only on-device is probed."""
        if kind in self._overrides:
            return Availability.AVAILABLE
        if kind == ProviderKind.ON_DEVICE:
            return probe_on_device()
        return Availability.AVAILABLE

    def list_providers(self) -> List[Dict[str, Any]]:
        """All provider kinds with their selectability."""
        providers = []
        for kind in ProviderKind:
            availability = self.probe(kind)
            providers.append({
                "kind": kind,
                "availability": availability,
                "selectable": availability == Availability.AVAILABLE,
            })
        return providers


class MockLLMRuntime:
    """Mock runtime for testing - returns predefined responses."""

    supports_images = True
    schema_constrained = False

    def __init__(self, responses: Dict[str, str], default: Optional[str] = None):
        """
        Args:
            responses: Map from prompt keywords to mock responses
            default: Response when no keyword matches
        """
        self.responses = responses
        self.default = default if default is not None else '{"featureName": "", "scenarios": []}'
        self.call_count = 0
        self.last_request: Optional[GenerationRequest] = None

    def generate(self, request: GenerationRequest) -> str:
        """Return mock response based on prompt content."""
        self.call_count += 1
        self.last_request = request

        for keyword, response in self.responses.items():
            if keyword.lower() in request.prompt.lower():
                return response

        return self.default

    def is_available(self) -> bool:
        return True

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "name": "mock",
            "type": "mock",
            "responses_count": len(self.responses)
        }
