from __future__ import annotations

import json
import time
from typing import Any

import requests
import streamlit as st

from policy.slippage import SLIPPAGE_PRESETS, selected_preset, tolerance_from_percent

DEFAULT_BASE_URL = "http://localhost:8000"

NODE_KINDS = ["transfer", "transferPLS", "swap", "checkTokenBalance", "wait", "gasGuard"]
NODE_TEMPLATES: dict[str, dict[str, Any]] = {
    "transfer": {"token": "", "to": "", "amount": {"type": "static", "value": "0"}},
    "transferPLS": {"to": "", "amount": {"type": "static", "value": "0"}},
    "swap": {"path": [], "amountIn": {"type": "static", "value": "0"}, "slippage": None},
    "checkTokenBalance": {"token": ""},
    "wait": {"delay": 1},
    "gasGuard": {"maxGasPrice": 100},
}
STATUS_BADGES = {
    "initial": "⚪ idle",
    "loading": "🔵 running",
    "success": "🟢 success",
    "error": "🔴 error",
}


def _log_call(message: str) -> None:
    ts = time.strftime("%H:%M:%S")
    entry = f"{ts} | {message}"
    print(entry)
    if "call_log" in st.session_state:
        st.session_state["call_log"].append(entry)
        st.session_state["call_log"] = st.session_state["call_log"][-100:]


def _api_request(method: str, path: str, payload: dict[str, Any] | None = None) -> tuple[bool, Any]:
    url = f"{st.session_state['base_url']}{path}"
    try:
        _log_call(f"{method} {path}")
        resp = requests.request(method, url, json=payload, timeout=620)
        if resp.status_code >= 400:
            _log_call(f"ERR {resp.status_code} {path}")
            return False, {"error": f"{resp.status_code} {resp.text}"}
        if resp.status_code == 204 or resp.text.strip() == "":
            return True, {}
        return True, resp.json()
    except requests.RequestException as exc:
        _log_call(f"EXC {path} {exc}")
        return False, {"error": str(exc)}


def _stream_run(automation_id: str, on_event) -> tuple[bool, Any]:
    """POST /run and feed every SSE event to ``on_event`` until ``done``."""
    path = f"/v1/automations/{automation_id}/run"
    try:
        _log_call(f"POST {path} (SSE)")
        resp = requests.post(
            f"{st.session_state['base_url']}{path}",
            headers={"Accept": "text/event-stream"},
            stream=True,
            timeout=(5, 600),
        )
        if resp.status_code >= 400:
            return False, {"error": f"{resp.status_code} {resp.text}"}

        for raw_line in resp.iter_lines(decode_unicode=True):
            if not raw_line or not raw_line.startswith("data:"):
                continue
            try:
                event = json.loads(raw_line[len("data:") :].strip())
            except json.JSONDecodeError:
                continue
            on_event(event)
            if event.get("type") == "done":
                return True, event
        return False, {"error": "stream ended without done event"}
    except requests.RequestException as exc:
        _log_call(f"EXC {path} {exc}")
        return False, {"error": str(exc)}


def _init_state() -> None:
    st.session_state.setdefault("base_url", DEFAULT_BASE_URL)
    st.session_state.setdefault("automation_id", None)
    st.session_state.setdefault("statuses", {})
    st.session_state.setdefault("run_events", [])
    st.session_state.setdefault("last_execution_id", None)
    st.session_state.setdefault("call_log", [])


def _refresh_statuses(automation_id: str) -> None:
    ok, data = _api_request("GET", f"/v1/automations/{automation_id}/statuses")
    if ok:
        st.session_state["statuses"] = data.get("statuses", {})


def _slippage_selector(current: float) -> float | None:
    """Preset buttons plus a custom percent input. Empty custom input means 1%."""
    presets = {p.label: p.value for p in SLIPPAGE_PRESETS}
    labels = [*presets.keys(), "Custom"]
    preset = selected_preset(current)
    selected = preset.label if preset else "Custom"
    choice = st.radio("Default slippage", labels, index=labels.index(selected), horizontal=True)
    if choice != "Custom":
        return float(presets[choice])
    text = st.text_input("Custom slippage (%)", value="" if selected != "Custom" else f"{current * 100:g}")
    try:
        return float(tolerance_from_percent(text).value)
    except ValueError:
        st.error("Slippage must be a number between 0% and 100%")
        return None


_init_state()
st.set_page_config(page_title="Pulse Automations", layout="wide")

with st.sidebar:
    st.session_state["base_url"] = st.text_input("API base URL", st.session_state["base_url"])

    ok, automations = _api_request("GET", "/v1/automations")
    automations = automations if ok else []
    options = {f"{a['name']} ({a['id'][:8]})": a["id"] for a in automations}
    if options:
        label = st.selectbox("Automation", list(options))
        st.session_state["automation_id"] = options[label]

    with st.expander("New automation"):
        name = st.text_input("Name", "My automation")
        wallet = st.text_input("Wallet address", "")
        if st.button("Create"):
            ok, data = _api_request("POST", "/v1/automations", {"name": name, "walletAddress": wallet})
            if ok:
                st.session_state["automation_id"] = data["id"]
                st.rerun()
            else:
                st.error(data["error"])

    with st.expander("Call log"):
        st.code("\n".join(st.session_state["call_log"][-30:]) or "(empty)")

automation_id = st.session_state["automation_id"]
if not automation_id:
    st.info("Create or select an automation to start.")
    st.stop()

ok, automation = _api_request("GET", f"/v1/automations/{automation_id}")
if not ok:
    st.error(automation["error"])
    st.stop()

st.title(automation["name"])
_refresh_statuses(automation_id)

left, right = st.columns([3, 2])

with left:
    st.subheader("Steps")
    definition = automation["definition"]
    for node in definition.get("nodes", []):
        params = node["params"]
        status = st.session_state["statuses"].get(node["id"], "initial")
        with st.container(border=True):
            cols = st.columns([3, 2, 1])
            cols[0].markdown(f"**{params['kind']}** `{node['id']}`")
            cols[1].markdown(STATUS_BADGES.get(status, status))
            if params["kind"] != "start" and cols[2].button("Remove", key=f"rm-{node['id']}"):
                ok, data = _api_request("DELETE", f"/v1/automations/{automation_id}/nodes/{node['id']}")
                if not ok:
                    st.error(data["error"])
                st.rerun()
            if params["kind"] != "start":
                with st.expander("Parameters"):
                    text = st.text_area(
                        "JSON",
                        json.dumps({k: v for k, v in params.items() if k != "kind"}, indent=2),
                        key=f"params-{node['id']}",
                    )
                    if st.button("Save", key=f"save-{node['id']}"):
                        try:
                            body = {"params": json.loads(text)}
                        except json.JSONDecodeError as exc:
                            st.error(f"Invalid JSON: {exc}")
                        else:
                            ok, data = _api_request(
                                "PATCH", f"/v1/automations/{automation_id}/nodes/{node['id']}", body
                            )
                            if not ok:
                                st.error(data["error"])
                            st.rerun()

    with st.form("append"):
        kind = st.selectbox("Add step", NODE_KINDS)
        submitted = st.form_submit_button("Append")
        if submitted:
            ok, data = _api_request(
                "POST",
                f"/v1/automations/{automation_id}/nodes",
                {"kind": kind, "params": NODE_TEMPLATES[kind]},
            )
            if not ok:
                st.error(data["error"])
            st.rerun()

    if st.button("Reset to start node"):
        _api_request("POST", f"/v1/automations/{automation_id}/reset")
        st.rerun()

with right:
    st.subheader("Settings")
    slippage = _slippage_selector(float(automation["defaultSlippage"]))
    if slippage is not None and st.button("Save settings"):
        _api_request(
            "PATCH",
            f"/v1/automations/{automation_id}/settings",
            {"defaultSlippage": slippage},
        )
        st.rerun()

    st.subheader("Validation")
    ok, validation = _api_request("POST", f"/v1/automations/{automation_id}/validate")
    if ok:
        for node_id, fields in validation["hardErrors"].items():
            for field, message in fields.items():
                st.error(f"{node_id} · {field}: {message}")
        for node_id, fields in validation["softWarnings"].items():
            for field, message in fields.items():
                st.warning(f"{node_id} · {field}: {message}")
        if validation["isValid"] and not validation["softWarnings"]:
            st.success("All steps are valid")

    st.subheader("Run")
    if st.button("Run automation", type="primary"):
        st.session_state["run_events"] = []
        placeholder = st.empty()

        def _on_event(event: dict[str, Any]) -> None:
            st.session_state["run_events"].append(event)
            if event.get("type") == "node_status":
                st.session_state["statuses"][event["nodeId"]] = event["status"]
            if event.get("executionId"):
                st.session_state["last_execution_id"] = event["executionId"]
            placeholder.json(st.session_state["run_events"][-10:])

        ok, done = _stream_run(automation_id, _on_event)
        if not ok:
            st.error(done["error"])
        elif done.get("success"):
            st.success("Run finished")
        else:
            st.error(done.get("error") or "Run failed")

    execution_id = st.session_state["last_execution_id"]
    if execution_id:
        ok, detail = _api_request("GET", f"/v1/executions/{execution_id}")
        if ok:
            st.caption(f"Execution {execution_id} · {detail['execution']['status']}")
            for log in detail["logs"]:
                with st.expander(f"{log['node_type']} · {log['node_id']}"):
                    if log["error"]:
                        st.error(f"{log['error']} ({log['error_type']})")
                    st.json(log["output"] or {})
