"""
On-device runtime - in-process generation with MLX.

mlx-lm only installs on Apple Silicon, so it is imported lazily and its
presence is probed before the provider is offered for selection.
"""

from typing import Dict, Any
from importlib.util import find_spec
import logging
import platform
import sys

from .exceptions import ProviderError, UnsupportedCapabilityError
from .models import Availability, GenerationRequest
from .prompts import LOCAL_SYSTEM_INSTRUCTION

logger = logging.getLogger(__name__)


def probe_on_device() -> Availability:
    """Best-effort capability probe. Never raises."""
    try:
        if sys.platform != "darwin" or platform.machine() != "arm64":
            return Availability.UNAVAILABLE
        if find_spec("mlx_lm") is None:
            return Availability.UNAVAILABLE
        return Availability.AVAILABLE
    except Exception as e:
        logger.debug(f"On-device probe inconclusive: {e}")
        return Availability.UNKNOWN


class OnDeviceRuntime:
    """
    Runtime that uses MLX directly in-process.
    The model is loaded on first use and kept for later requests.
    """

    supports_images = False
    schema_constrained = False

    def __init__(
        self,
        model_path: str,
        temperature: float = 0.3,
        max_tokens: int = 4096
    ):
        self.model_path = model_path
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.name = "on-device"
        self.model = None
        self.tokenizer = None

    def _load_model(self):
        try:
            from mlx_lm import load
            logger.info(f"Loading MLX model: {self.model_path}")
            self.model, self.tokenizer = load(self.model_path)
            logger.info("MLX model loaded successfully")
        except Exception as e:
            logger.error(f"Failed to load MLX model: {e}")
            raise ProviderError(f"无法加载设备端模型 {self.model_path}: {e}")

    def _format_prompt(self, prompt: str) -> str:
        """Apply the tokenizer's chat template when it has one."""
        if getattr(self.tokenizer, "chat_template", None):
            messages = [
                {"role": "system", "content": LOCAL_SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt}
            ]
            return self.tokenizer.apply_chat_template(
                messages, tokenize=False, add_generation_prompt=True
            )
        return f"{LOCAL_SYSTEM_INSTRUCTION}\n\n{prompt}"

    def generate(self, request: GenerationRequest) -> str:
        """Generate response using MLX directly."""
        if request.image is not None:
            raise UnsupportedCapabilityError("设备端模型暂不支持图像识别。")

        if self.model is None or self.tokenizer is None:
            self._load_model()

        try:
            from mlx_lm import generate
            from mlx_lm.sample_utils import make_sampler

            sampler = make_sampler(temp=self.temperature)

            return generate(
                model=self.model,
                tokenizer=self.tokenizer,
                prompt=self._format_prompt(request.prompt),
                sampler=sampler,
                max_tokens=self.max_tokens
            )

        except Exception as e:
            logger.error(f"MLX generation failed: {e}")
            raise ProviderError(f"设备端模型生成失败: {e}")

    def is_available(self) -> bool:
        return probe_on_device() == Availability.AVAILABLE

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": "mlx",
            "model_path": self.model_path,
            "loaded": self.model is not None
        }
