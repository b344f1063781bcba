"""
AutoQA Test Case Generator

Turns natural-language requirements or flowchart images into structured QA
test scenarios using hosted, local or on-device LLMs, and presents them as an
interactive mind map or exportable table.
"""

__version__ = "0.1.0"
__all__ = [
    "TestSuiteGenerator",
    "TestSuite",
    "TestCaseScenario",
    "ProviderKind",
    "ProviderSelection",
    "AutoQAError"
]

from .models import TestSuite, TestCaseScenario, ProviderKind, ProviderSelection
from .generator import TestSuiteGenerator
from .exceptions import AutoQAError
