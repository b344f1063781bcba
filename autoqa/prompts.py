"""
Prompt construction for test suite generation.

Prompts are pure functions of their inputs. The target language is a module
constant so a deployment can switch it without touching the prompt logic.
"""

from __future__ import annotations
from typing import Optional

from .exceptions import InvalidInputError

TARGET_LANGUAGE = "中文"

# Conventional value for a field with nothing to prepare
EMPTY_FIELD_MARKER = "无"

LOCAL_SYSTEM_INSTRUCTION = (
    "你是一位资深软件测试工程师。请务必只输出纯 JSON 格式数据，"
    "不要包含任何思考过程(thinking)或Markdown标记。"
)

OUTPUT_SHAPE = """{
  "featureName": "功能名称",
  "scenarios": [
    {
      "id": "TC_001",
      "scenarioName": "场景名称",
      "dataPreparation": "1. 准备项一\\n2. 准备项二",
      "steps": "1. 步骤一\\n2. 步骤二",
      "executionAction": "执行动作",
      "expectedResult": "1. 结果一\\n2. 结果二"
    }
  ]
}"""


def _format_rules(language: str) -> str:
    return f"""输出要求：
1. 必须是严格的 JSON 格式，只输出一个 JSON 对象，结构如下：
{OUTPUT_SHAPE}
2. featureName 为功能名；scenarios 数组中每个用例都必须包含 id, scenarioName, dataPreparation, steps, executionAction, expectedResult 六个字段，且均为字符串。
3. 所有文字内容使用{language}。
4. dataPreparation、steps、expectedResult 如包含多项，必须使用换行分隔的编号列表（"1. ...\\n2. ..."）；只有一项时可直接写文本；无需准备数据时 dataPreparation 写"{EMPTY_FIELD_MARKER}"。
5. 用例集合至少包含一个正常流程用例、一个边界值用例和一个异常处理用例（在需求允许的情况下）。"""


def build_requirements_prompt(requirements: str, language: str = TARGET_LANGUAGE) -> str:
    """Build the instruction text for a natural-language requirement."""
    if not requirements or not requirements.strip():
        raise InvalidInputError("请输入需求描述。")

    return f"""作为资深QA，请分析此需求并生成测试用例。
需求描述: "{requirements.strip()}"

{_format_rules(language)}"""


def build_flowchart_prompt(additional_text: Optional[str] = None, language: str = TARGET_LANGUAGE) -> str:
    """
    Build the instruction text that accompanies a flowchart image.

    Asks for systematic path coverage: every branch of every decision point,
    one scenario per distinct start-to-end path, with boundary data derived
    from each branch condition.
    """
    extra = ""
    if additional_text and additional_text.strip():
        extra = f"\n补充说明: \"{additional_text.strip()}\"\n"

    return f"""作为资深QA，请分析流程图并生成测试用例。
{extra}
分析方法（路径覆盖）：
1. 识别流程图中的开始节点、结束节点以及所有判断节点（菱形）。
2. 枚举每个判断节点的每一个分支，不得遗漏任何分支。
3. 每一条从开始到结束的独立路径生成一个测试场景，scenarioName 中注明所走的分支。
4. 根据分支条件推导具体的边界测试数据，例如条件为 "金额 > 1000" 时，取刚好超过阈值的值（如 1000.01）作为该分支的数据，并在 dataPreparation 中写明。

{_format_rules(language)}"""
