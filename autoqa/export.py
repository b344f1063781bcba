"""
Table view data and export formats for a TestSuite.

- Markdown: one heading per scenario, copied to the clipboard by the UI
- XMind: zip archive with content.json, manifest.json and metadata.json
"""

from __future__ import annotations
import io
import json
import re
import time
import zipfile
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .models import TestSuite

TABLE_COLUMNS = ["编号", "场景名称", "数据准备", "操作步骤", "执行动作", "预期结果"]

SECTION_LABELS = {
    "data_preparation": "测试数据准备",
    "steps": "操作步骤",
    "execution_action": "执行动作",
    "expected_result": "预期结果",
}

XMIND_CREATOR = "AutoQA Agent"

SCENARIO_PREFIX = "## "
HEADING_SEPARATOR = ": "


def to_dataframe(suite: TestSuite) -> pd.DataFrame:
    """One row per scenario, in generation order."""
    rows = [
        [s.id, s.scenario_name, s.data_preparation, s.steps, s.execution_action, s.expected_result]
        for s in suite.scenarios
    ]
    return pd.DataFrame(rows, columns=TABLE_COLUMNS)


def _single_line(text: str) -> str:
    return " ".join(text.splitlines())


def _escape_body(text: str) -> str:
    """Backslash-escape lines that would otherwise render as headings."""
    return "\n".join("\\" + line if line.startswith("#") else line for line in text.splitlines())


def to_markdown(suite: TestSuite) -> str:
    md = f"# {_single_line(suite.feature_name)}\n\n"
    for s in suite.scenarios:
        heading = f"{_single_line(s.id)}{HEADING_SEPARATOR}{_single_line(s.scenario_name)}"
        md += f"{SCENARIO_PREFIX}{heading}\n"
        for attr, label in SECTION_LABELS.items():
            md += f"- **{label}**:\n{_escape_body(getattr(s, attr))}\n"
        md += "\n"
    return md


def read_markdown_outline(text: str) -> Tuple[str, List[Tuple[str, str]]]:
    """
    Read back the feature name and (id, name) of every scenario heading.

    Field bodies never start with '#', so every '## ' line is a heading. The
    id ends at the first ': ', which lets ids contain ':' and names contain ': '.
    """
    feature = None
    scenarios = []
    for line in text.splitlines():
        if feature is None and line.startswith("# "):
            feature = line[2:]
            continue
        if line.startswith(SCENARIO_PREFIX):
            scenario_id, _, name = line[len(SCENARIO_PREFIX):].partition(HEADING_SEPARATOR)
            scenarios.append((scenario_id, name))
    return feature or "", scenarios


def _topic(topic_id: str, title: str, child: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    topic: Dict[str, Any] = {"id": topic_id, "title": title}
    if child is not None:
        topic["children"] = {"attached": [child]}
    return topic


def build_xmind_content(suite: TestSuite, root_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Sheet structure for content.json.

    Each scenario is a chain, one node per level:
    scenario -> data preparation -> steps -> execution action -> expected result.
    """
    root_id = root_id or f"root-{int(time.time() * 1000)}"

    attached = []
    for idx, s in enumerate(suite.scenarios):
        result = _topic(f"result-{s.id}", f"预期结果:\n{s.expected_result}")
        result["style"] = {
            "properties": {
                "shape-class": "org.xmind.topicShape.roundedRect",
                "fill": "#E8F5E9",
                "border-line-color": "#4CAF50",
            }
        }
        action = _topic(f"action-{s.id}", f"执行动作:\n{s.execution_action}", result)
        steps = _topic(f"steps-{s.id}", f"操作步骤:\n{s.steps}", action)
        data = _topic(f"data-{s.id}", f"数据准备:\n{s.data_preparation}", steps)
        attached.append(_topic(f"scenario-{s.id}-{idx}", f"[{s.id}] {s.scenario_name}", data))

    return [
        {
            "id": "root-sheet",
            "title": "画布 1",
            "rootTopic": {
                "id": root_id,
                "title": suite.feature_name,
                "structureClass": "org.xmind.ui.logic.right",
                "children": {"attached": attached},
            },
        }
    ]


def export_xmind(suite: TestSuite) -> bytes:
    """Package the suite as an .xmind archive."""
    manifest = {"file-entries": {"content.json": {}, "metadata.json": {}}}
    metadata = {"creator": {"name": XMIND_CREATOR}}

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as z:
        z.writestr("content.json", json.dumps(build_xmind_content(suite), ensure_ascii=False))
        z.writestr("manifest.json", json.dumps(manifest))
        z.writestr("metadata.json", json.dumps(metadata))
    return buffer.getvalue()


def _file_stem(suite: TestSuite) -> str:
    return re.sub(r"\s+", "_", suite.feature_name.strip()) or "test_suite"


def xmind_filename(suite: TestSuite) -> str:
    return f"{_file_stem(suite)}_测试用例.xmind"


def markdown_filename(suite: TestSuite) -> str:
    return f"{_file_stem(suite)}_测试用例.md"
