"""
AutoQA web UI.

Three independent tabs (new requirement, legacy requirement, flowchart), each
with its own GenerationSession in st.session_state. Run with
``streamlit run autoqa/app.py`` or the ``autoqa`` launcher.
"""

import logging
import mimetypes
import os
from typing import Callable

import streamlit as st

from autoqa.cli import setup_logging
from autoqa.config import (
    CREDENTIAL,
    HOSTED_MODEL_NAME,
    LOCAL_MODEL_NAME,
    LOCAL_MODEL_URL,
    ON_DEVICE_MODEL,
    JsonFileSettingsStore,
    get_setting,
    resolve_local_endpoint,
    save_setting,
)
from autoqa.exceptions import AutoQAError, ConfigurationError, ProviderError, RequestInFlightError
from autoqa.export import (
    export_xmind,
    markdown_filename,
    to_dataframe,
    to_markdown,
    xmind_filename,
)
from autoqa.generator import TestSuiteGenerator
from autoqa.mindmap import MAX_SCALE, MIN_SCALE, Viewport, layout_suite
from autoqa.models import ImageInput, ProviderKind, ProviderSelection, TestSuite
from autoqa.render import build_figure, canvas_height, selected_index_from_event
from autoqa.runtime import LocalCustomRuntime, RuntimeFactory
from autoqa.session import GenerationSession

st.set_page_config(page_title="AutoQA 智能测试助手", page_icon="🤖", layout="wide")

setup_logging(os.getenv("AUTOQA_VERBOSE") == "1")
logger = logging.getLogger("autoqa.app")

CANVAS_WIDTH = 1000
PAN_STEP = 100

# Arrow moves the map in its direction, in screen pixels
PAN_CONTROLS = [
    ("←", -PAN_STEP, 0),
    ("→", PAN_STEP, 0),
    ("↑", 0, -PAN_STEP),
    ("↓", 0, PAN_STEP),
]

PROVIDER_LABELS = {
    ProviderKind.HOSTED_API: "☁️ Gemini (云端)",
    ProviderKind.LOCAL_CUSTOM: "🖥️ DeepSeek (本地服务)",
    ProviderKind.ON_DEVICE: "💻 MLX (设备端)",
}

PROVIDER_DESCRIPTIONS = {
    ProviderKind.HOSTED_API: "云端高速版：平衡速度与质量，支持流程图识别",
    ProviderKind.LOCAL_CUSTOM: "本地服务版：支持 Ollama/LM Studio 运行的模型",
    ProviderKind.ON_DEVICE: "内置离线版：Apple Silicon 本机运行的模型",
}

DETAIL_FIELDS = [
    ("测试数据准备", "data_preparation"),
    ("操作步骤", "steps"),
    ("执行动作", "execution_action"),
    ("预期结果", "expected_result"),
]


# ---------------------------------------------------------------------------
# Shared resources
# ---------------------------------------------------------------------------


@st.cache_resource
def get_settings_store() -> JsonFileSettingsStore:
    return JsonFileSettingsStore()


@st.cache_resource
def get_factory() -> RuntimeFactory:
    return RuntimeFactory(get_settings_store())


def get_generator() -> TestSuiteGenerator:
    return TestSuiteGenerator(get_settings_store(), factory=get_factory())


def get_session(ns: str) -> GenerationSession:
    key = f"{ns}_session"
    if key not in st.session_state:
        st.session_state[key] = GenerationSession(ns)
    return st.session_state[key]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def render_settings():
    store = get_settings_store()

    with st.sidebar:
        st.header("⚙️ 设置")
        with st.form("settings_form"):
            credential = st.text_input(
                "Google Gemini API Key",
                value=store.get(CREDENTIAL) or "",
                type="password",
                placeholder="AIzaSy...",
            )
            hosted_model = st.text_input("云端模型", value=get_setting(store, HOSTED_MODEL_NAME))
            local_url = st.text_input("本地模型 URL", value=get_setting(store, LOCAL_MODEL_URL))
            local_model = st.text_input("本地模型名称", value=get_setting(store, LOCAL_MODEL_NAME))
            device_model = st.text_input("设备端模型路径", value=get_setting(store, ON_DEVICE_MODEL))

            if st.form_submit_button("保存设置", type="primary", use_container_width=True):
                save_setting(store, CREDENTIAL, credential)
                save_setting(store, HOSTED_MODEL_NAME, hosted_model)
                save_setting(store, LOCAL_MODEL_URL, local_url)
                save_setting(store, LOCAL_MODEL_NAME, local_model)
                save_setting(store, ON_DEVICE_MODEL, device_model)
                st.success("设置已更新，后续请求将使用新配置。")

        if st.button("测试本地连接", use_container_width=True):
            url, model = resolve_local_endpoint(store)
            if LocalCustomRuntime(url=url, model=model).is_available():
                st.success(f"本地服务可用: {url}")
            else:
                st.warning(f"无法连接 {url}，请确认服务已启动并允许跨域请求。")

        st.caption("Key 仅保存在本机设置文件中，不会发送到除模型服务以外的任何服务器。")


def render_provider_selector(ns: str) -> ProviderSelection:
    providers = get_factory().list_providers()
    options = [p["kind"] for p in providers if p["selectable"]]

    kind = st.radio(
        "选择执行模型",
        options,
        format_func=lambda k: PROVIDER_LABELS[k],
        captions=[PROVIDER_DESCRIPTIONS[k] for k in options],
        key=f"{ns}_provider",
    )
    for p in providers:
        if not p["selectable"]:
            st.caption(f"{PROVIDER_LABELS[p['kind']]} · 未激活")

    return ProviderSelection(kind=kind)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def run_generation(session: GenerationSession, generate: Callable[[], TestSuite]):
    try:
        token = session.begin()
    except RequestInFlightError as e:
        st.warning(str(e))
        return

    try:
        with st.spinner("生成中..."):
            suite = generate()
    except AutoQAError as e:
        logger.error(f"[{session.name}] Generation failed: {e}")
        session.fail(token, e)
    except Exception as e:
        logger.exception(f"[{session.name}] Unexpected error during generation")
        session.fail(token, ProviderError(f"生成测试用例时发生错误: {e}"))
    else:
        session.complete(token, suite)
    finally:
        # Script interrupted by a rerun: drop the outcome instead of leaving the tab locked
        if session.pending and session.is_current(token):
            session.cancel_pending()


# ---------------------------------------------------------------------------
# Result views
# ---------------------------------------------------------------------------


def render_detail(ns: str, session: GenerationSession, on_close: Callable[[], None]):
    scenario = session.selection.current
    with st.container(border=True):
        st.markdown(f"#### {scenario.id} · {scenario.scenario_name}")
        for label, attr in DETAIL_FIELDS:
            st.markdown(f"**{label}**")
            st.text(getattr(scenario, attr))
        st.button("关闭", key=f"{ns}_close_detail", on_click=on_close)


def get_viewport(ns: str, session: GenerationSession, height: int) -> Viewport:
    """The tab's viewport, kept across reruns and started fresh for each new result."""
    key = f"{ns}_viewport"
    stored = st.session_state.get(key)
    if stored is None or stored[0] != session.token:
        stored = (session.token, Viewport(CANVAS_WIDTH, height))
        st.session_state[key] = stored
    viewport = stored[1]
    viewport.resize(CANVAS_WIDTH, height)
    return viewport


def render_mind_map(ns: str, session: GenerationSession):
    suite = session.suite
    last_pick_key = f"{ns}_last_pick"
    chart_rev_key = f"{ns}_chart_rev"
    chart_key = f"{ns}_map_{session.token}_{st.session_state.get(chart_rev_key, 0)}"

    # Apply the click before drawing so the highlight matches the panel
    picked = selected_index_from_event(st.session_state.get(chart_key))
    st.session_state[last_pick_key] = session.selection.apply_pick(
        suite, picked, st.session_state.get(last_pick_key)
    )

    def close_detail():
        session.selection.clear()
        st.session_state[last_pick_key] = None
        # A fresh chart widget drops the stale plotly selection
        st.session_state[chart_rev_key] = st.session_state.get(chart_rev_key, 0) + 1

    height = canvas_height(len(suite.scenarios))
    layout = layout_suite(suite, CANVAS_WIDTH, height)
    viewport = get_viewport(ns, session, height)

    zoom_key = f"{ns}_zoom"
    if zoom_key not in st.session_state:
        st.session_state[zoom_key] = 1.0

    def reset_view():
        st.session_state[zoom_key] = 1.0
        viewport.reset()

    c_zoom, *c_pan, c_reset = st.columns([4] + [1] * len(PAN_CONTROLS) + [2])
    with c_zoom:
        zoom = st.slider("缩放", MIN_SCALE, MAX_SCALE, step=0.1, key=zoom_key)
    for col, (label, dx, dy) in zip(c_pan, PAN_CONTROLS):
        with col:
            st.button(label, key=f"{ns}_pan_{label}", on_click=viewport.pan_by, args=(dx, dy))
    with c_reset:
        st.button("重置视图", key=f"{ns}_reset_view", on_click=reset_view, use_container_width=True)

    viewport.zoom_to(zoom)

    if session.selection.current is not None:
        col_map, col_detail = st.columns([3, 2])
    else:
        col_map, col_detail = st.container(), None

    with col_map:
        st.caption("拖拽或方向键平移，滑块缩放。点击节点查看详情，点击空白处关闭。")
        st.plotly_chart(
            build_figure(layout, viewport, session.selection.index),
            use_container_width=True,
            on_select="rerun",
            selection_mode="points",
            key=chart_key,
            config={"scrollZoom": False, "displaylogo": False},
        )

    if col_detail is not None:
        with col_detail:
            render_detail(ns, session, close_detail)


def render_export(ns: str, suite: TestSuite):
    md = to_markdown(suite)
    with st.expander("📋 复制 Markdown"):
        st.code(md, language="markdown")

    c_md, c_xmind = st.columns(2)
    with c_md:
        st.download_button(
            "下载 Markdown",
            data=md.encode("utf-8"),
            file_name=markdown_filename(suite),
            mime="text/markdown",
            key=f"{ns}_download_md",
            use_container_width=True,
        )
    with c_xmind:
        st.download_button(
            "下载 .xmind",
            data=export_xmind(suite),
            file_name=xmind_filename(suite),
            mime="application/zip",
            key=f"{ns}_download_xmind",
            use_container_width=True,
        )


def render_results(ns: str, session: GenerationSession):
    if session.error:
        st.error(f"分析失败：{session.error}")

    suite = session.suite
    if suite is None:
        if not session.error:
            st.info("输入需求后点击生成，结果将在这里以思维导图或表格展示。")
        return

    st.subheader(f"📋 {suite.feature_name}")
    st.caption(f"共 {len(suite.scenarios)} 个测试场景")

    view = st.radio(
        "视图",
        ["map", "table"],
        format_func=lambda v: "🧠 思维导图" if v == "map" else "📑 表格",
        horizontal=True,
        key=f"{ns}_view",
        label_visibility="collapsed",
    )
    if view == "map":
        render_mind_map(ns, session)
    else:
        st.dataframe(to_dataframe(suite), hide_index=True, use_container_width=True)

    render_export(ns, suite)


# ---------------------------------------------------------------------------
# Tabs
# ---------------------------------------------------------------------------


def render_requirement_tab(ns: str):
    session = get_session(ns)
    col_input, col_result = st.columns([1, 2])

    with col_input:
        selection = render_provider_selector(ns)
        text = st.text_area(
            "需求描述文字",
            key=f"{ns}_requirements",
            height=320,
            placeholder="在此粘贴需求...",
        )
        if st.button(
            "✨ 立即生成测试用例",
            type="primary",
            disabled=session.pending or not text.strip(),
            key=f"{ns}_generate",
            use_container_width=True,
        ):
            run_generation(session, lambda: get_generator().generate_from_requirements(text, selection))

    with col_result:
        render_results(ns, session)


def render_flowchart_tab(ns: str):
    session = get_session(ns)
    col_input, col_result = st.columns([1, 2])

    with col_input:
        selection = render_provider_selector(ns)
        uploaded = st.file_uploader(
            "上传流程图",
            type=["png", "jpg", "jpeg", "webp"],
            key=f"{ns}_image",
        )
        if uploaded is not None:
            st.image(uploaded, use_container_width=True)
        additional_text = st.text_area(
            "补充说明（可选）",
            key=f"{ns}_additional",
            height=120,
            placeholder="例如：重点关注支付失败分支...",
        )
        if st.button(
            "🔀 分析流程图并生成用例",
            type="primary",
            disabled=session.pending or uploaded is None,
            key=f"{ns}_generate",
            use_container_width=True,
        ):
            mime_type = uploaded.type or mimetypes.guess_type(uploaded.name)[0] or ""
            data = uploaded.getvalue()
            run_generation(
                session,
                lambda: get_generator().generate_from_flowchart(
                    ImageInput(data=data, mime_type=mime_type), additional_text, selection
                ),
            )

    with col_result:
        render_results(ns, session)


def main():
    st.title("🤖 AutoQA 智能测试助手")
    st.caption("基于 AI 驱动的测试用例生成器")

    try:
        render_settings()
    except ConfigurationError as e:
        st.error(str(e))
        st.stop()

    tab_new, tab_old, tab_flow = st.tabs(["📄 新需求", "🕘 老需求", "🔀 流程图"])
    with tab_new:
        render_requirement_tab("new")
    with tab_old:
        render_requirement_tab("old")
    with tab_flow:
        render_flowchart_tab("flowchart")


if __name__ == "__main__":
    main()
