"""
Streamlit Frontend for Smart Ledger

The pages are thin: every number comes from smart_ledger.queries and
every mutation goes through the flows built by create_app_components.

The components are cached once per server process, so every browser
session reads and writes the same ledger: this is a single-user app.
Staged input and the AI busy flag are kept per session.

Pages:
1. 收支总览 - month totals, budget progress, recent entries
2. 账单明细 - searchable history grouped by day
3. 统计报表 - expense distribution and the daily trend
4. AI 智能记账 - text / receipt photo / voice memo entry
5. 手动记一笔 - manual form
6. 设置中心 - connection status and audit trail
"""

import asyncio
from datetime import datetime, timezone

import streamlit as st

from smart_ledger.audit import configure_logging
from smart_ledger.capture import AudioRecorder, CaptureError, CaptureSession
from smart_ledger.config import get_settings, validate_all_settings
from smart_ledger.models import TransactionType, get_registry
from smart_ledger.orchestrator import create_app_components
from smart_ledger.queries import (
    budget_progress,
    daily_trend,
    expense_by_category,
    format_day,
    group_by_day,
    local_date,
    month_transactions,
    recent,
    search,
    summarize,
    top_expense_category,
)


st.set_page_config(
    page_title="元元记账 AI",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    configure_logging(get_settings().app.log_level)
    return create_app_components()


def get_capture() -> tuple[CaptureSession, AudioRecorder]:
    """Per-browser-session staging buffer and recorder."""
    app_settings = get_settings().app
    if "capture" not in st.session_state:
        st.session_state.capture = CaptureSession(
            max_image_bytes=app_settings.max_upload_size_bytes,
            allowed_image_formats=app_settings.supported_formats_list,
        )
    if "recorder" not in st.session_state:
        st.session_state.recorder = AudioRecorder(mime_type=app_settings.audio_mime_type)
    return st.session_state.capture, st.session_state.recorder


def money(value: float) -> str:
    return f"¥{value:,.2f}"


def render_transaction_row(txn, store, key_prefix: str):
    """One ledger line with a delete button."""
    registry = get_registry()
    category = registry.find_by_id(txn.category_id)
    sign = "+" if txn.is_income else "-"

    col1, col2, col3 = st.columns([6, 2, 1])
    with col1:
        icon = category.icon if category else "❔"
        name = category.name if category else txn.category_id
        st.markdown(f"{icon} **{txn.note}**  \n{name} · {format_day(local_date(txn.date))}")
    with col2:
        st.markdown(f"**{sign}{money(txn.amount)}**")
    with col3:
        if st.button("删除", key=f"{key_prefix}-del-{txn.id}"):
            store.remove_one(txn.id)
            st.rerun()


def main():
    """Main application entry point."""
    store, ai_flow, manual_flow, audit_logger = get_components()

    st.sidebar.title("💰 元元记账 AI")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "导航",
        ["📊 收支总览", "🧾 账单明细", "📈 统计报表", "✨ AI 智能记账", "➕ 手动记一笔", "⚙️ 设置中心"],
        index=0,
    )

    if page == "📊 收支总览":
        render_dashboard_page(store)
    elif page == "🧾 账单明细":
        render_history_page(store)
    elif page == "📈 统计报表":
        render_reports_page(store)
    elif page == "✨ AI 智能记账":
        render_ai_entry_page(ai_flow, audit_logger)
    elif page == "➕ 手动记一笔":
        render_manual_entry_page(manual_flow)
    elif page == "⚙️ 设置中心":
        render_settings_page(store, audit_logger)


def render_dashboard_page(store):
    st.title("📊 收支总览")

    now = datetime.now(timezone.utc)
    monthly = month_transactions(store.transactions, now)
    summary = summarize(monthly)

    col1, col2, col3 = st.columns(3)
    col1.metric("本月结余", money(summary.balance))
    col2.metric("本月收入", money(summary.income))
    col3.metric("本月支出", money(summary.expense))

    progress = budget_progress(store.budgets, summary.expense)
    st.subheader("月度预算")
    st.progress(min(progress.percent, 100.0) / 100)
    st.caption(f"{money(progress.spent)} / {money(progress.total)}")
    if progress.over_budget:
        st.error(f"注意！您已超出预算 {money(-progress.remaining)}！")
    else:
        st.info(f"预算余额: {money(progress.remaining)}")

    st.subheader("最近记录")
    latest = recent(store.transactions, get_settings().app.recent_limit)
    if not latest:
        st.info("暂无记录，去记一笔吧。")
    for txn in latest:
        render_transaction_row(txn, store, "dash")


def render_history_page(store):
    st.title("🧾 账单明细")

    term = st.text_input("搜索备注或分类...", value="")
    matches = search(store.transactions, term, get_registry())
    days = group_by_day(matches)

    if not days:
        st.info("没有找到相关记录。")
        return

    for day in days:
        st.markdown(
            f"#### {format_day(day.date)}  "
            f"<small>收入 {money(day.income)} · 支出 {money(day.expense)}</small>",
            unsafe_allow_html=True,
        )
        for txn in day.transactions:
            render_transaction_row(txn, store, f"hist-{day.date}")


def render_reports_page(store):
    st.title("📈 统计报表")
    registry = get_registry()
    transactions = store.transactions

    st.subheader("支出构成")
    totals = expense_by_category(transactions, registry)
    if totals:
        st.bar_chart(
            [{"分类": t.name, "金额": t.value} for t in totals],
            x="分类",
            y="金额",
        )
    else:
        st.info("暂无支出数据。")

    st.subheader(f"近 {get_settings().app.trend_days} 日收支")
    today = local_date(datetime.now(timezone.utc))
    trend = daily_trend(transactions, today, days=get_settings().app.trend_days)
    st.bar_chart(
        [{"日期": p.label, "收入": p.income, "支出": p.expense} for p in trend],
        x="日期",
        y=["收入", "支出"],
    )

    top = top_expense_category(transactions, registry)
    if top:
        st.success(
            f"分析您的近期记录，在 **{top}** 方面的支出最高。"
            "建议关注此项开支，看看是否有节省空间。"
        )


def get_ai_flow(shared_flow):
    """Per-browser-session view of the cached flow, with its own busy flag."""
    if shared_flow is None:
        return None
    if "ai_flow" not in st.session_state:
        st.session_state.ai_flow = shared_flow.for_session()
    return st.session_state.ai_flow


def render_ai_entry_page(ai_flow, audit_logger):
    st.title("✨ 商品级 AI 记账")
    st.markdown("我将为您自动拆分每一件购买的商品。")

    ai_flow = get_ai_flow(ai_flow)
    if ai_flow is None:
        st.error("AI 尚未配置。请在 .env 中设置 GEMINI_API_KEY。")
        return

    capture, recorder = get_capture()
    # Bumped after a successful submit so every input widget starts empty
    generation = st.session_state.setdefault("ai_generation", 0)

    last_result = st.session_state.pop("ai_result", None)
    if last_result:
        st.success(f"已记录 {len(last_result)} 笔。")
        for line in last_result:
            st.markdown(f"- {line}")

    text = st.text_area(
        "描述",
        value=capture.text,
        placeholder="手动输入，或使用下方工具识别...",
        key=f"ai-text-{generation}",
    )
    capture.set_text(text)

    col1, col2 = st.columns(2)
    with col1:
        image_file = st.file_uploader(
            "识别收据",
            type=get_settings().app.supported_formats_list,
            key=f"ai-upload-{generation}",
        )
        photo = st.camera_input("拍摄收据", key=f"ai-camera-{generation}")
        picked = photo or image_file
        if picked is not None and not capture.has_seen(picked.file_id):
            try:
                capture.stage_image(
                    picked.getvalue(),
                    picked.type,
                    filename=picked.name,
                    source_id=picked.file_id,
                )
            except CaptureError as e:
                audit_logger.log_capture_failed("image", str(e))
                st.error(e.user_message)
        if capture.image is not None:
            st.caption(f"已添加图片 ({capture.image.mime_type})")
            if st.button("移除图片"):
                capture.clear_image()
                st.rerun()

    with col2:
        voice = st.audio_input("按住录音", key=f"ai-voice-{generation}")
        if voice is not None and not capture.has_seen(voice.file_id):
            try:
                capture.stage_audio(recorder.record_clip(voice.getvalue()), source_id=voice.file_id)
            except CaptureError as e:
                audit_logger.log_capture_failed("audio", str(e))
                st.error(e.user_message)
        if capture.audio is not None:
            st.caption("语音已就绪")
            if st.button("删除语音"):
                capture.discard_audio()
                st.rerun()

    if st.button("开始记账", type="primary", disabled=ai_flow.busy):
        with st.spinner("正在提取商品明细..."):
            added, error = run_async(ai_flow.submit(capture))
        if error:
            st.error(error)
        else:
            st.session_state.ai_result = [
                f"{txn.note}: {'+' if txn.is_income else '-'}{money(txn.amount)}"
                for txn in added
            ]
            st.session_state.ai_generation = generation + 1
            st.rerun()


def render_manual_entry_page(manual_flow):
    st.title("➕ 手动记一笔")
    registry = get_registry()

    txn_type = st.radio(
        "类型",
        [TransactionType.EXPENSE, TransactionType.INCOME],
        format_func=lambda t: "支出" if t == TransactionType.EXPENSE else "收入",
        horizontal=True,
    )

    with st.form("manual-entry", clear_on_submit=True):
        amount = st.text_input("金额", placeholder="0.00")
        categories = registry.for_type(txn_type)
        category = st.selectbox(
            "分类",
            options=categories,
            format_func=lambda c: f"{c.icon} {c.name}",
        )
        note = st.text_input("备注", placeholder="想记点什么？")
        day = st.date_input("日期", value=local_date(datetime.now(timezone.utc)))

        if st.form_submit_button("确认保存", type="primary"):
            txn, error = manual_flow.submit(
                amount=amount,
                category_id=category.id,
                txn_type=txn_type,
                note=note,
                day=day,
            )
            if error:
                st.error(error)
            else:
                st.success(f"已保存: {txn.note} {money(txn.amount)}")


def render_settings_page(store, audit_logger):
    st.title("⚙️ 设置中心")

    st.markdown("### 连接状态")
    status = validate_all_settings()
    services = [
        ("Gemini (AI)", "gemini"),
        ("Google Sheets (存储)", "google_sheets"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - 已连接")
        else:
            error = status.get(f"{key}_error", "未配置")
            st.warning(f"⚠️ {name} - {error}")

    st.markdown(f"当前存储: `{store_backend_name(store)}` · 共 {len(store.transactions)} 笔记录")

    st.markdown("---")
    st.markdown("### 最近操作")
    for event in audit_logger.recent_events(limit=20):
        st.caption(f"{event.timestamp:%Y-%m-%d %H:%M:%S} · {event.event_type.value} · {event.description}")


def store_backend_name(store) -> str:
    return store.gateway.backend.name


if __name__ == "__main__":
    main()
