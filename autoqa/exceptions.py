"""Custom exceptions for AutoQA."""

from typing import Optional


class AutoQAError(Exception):
    """Base exception for AutoQA errors."""
    pass


class MissingCredentialError(AutoQAError):
    """Raised when the hosted API is selected but no credential is configured."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "未配置 API Key。请在侧边栏设置中填写，或设置环境变量 GEMINI_API_KEY。")


class QuotaExceededError(AutoQAError):
    """Raised when the hosted backend reports a rate or quota limit (HTTP 429)."""

    def __init__(self, details: str = ""):
        self.details = details
        super().__init__(
            "API 配额已用尽或请求过于频繁 (429)。请在设置中更换 API Key 后重试。"
            + (f" 详情: {details}" if details else "")
        )


class ProviderConnectionError(AutoQAError):
    """Raised when a local or network transport cannot be reached."""
    pass


class UnsupportedCapabilityError(AutoQAError):
    """Raised when the chosen provider cannot serve the requested modality or is not available."""
    pass


class MalformedResponseError(AutoQAError):
    """
    Raised when model output does not parse or validate into a test suite.

    Attributes:
        snippet: First characters of the offending raw text, for diagnostics
        reason: What went wrong while parsing or validating
    """

    SNIPPET_LENGTH = 50

    def __init__(self, raw_response: str, reason: str = ""):
        self.snippet = (raw_response or "")[:self.SNIPPET_LENGTH]
        self.reason = reason
        super().__init__(f"模型未返回有效的 JSON 数据。内容: {self.snippet}")


class ProviderError(AutoQAError):
    """Raised for backend-reported failures not otherwise classified."""
    pass


class InvalidInputError(AutoQAError):
    """Raised when user input cannot be turned into a generation request."""
    pass


class RequestInFlightError(AutoQAError):
    """Raised when a view starts a generation while its previous one is still pending."""
    pass


class ConfigurationError(AutoQAError):
    """Raised when configuration is invalid or missing."""
    pass
