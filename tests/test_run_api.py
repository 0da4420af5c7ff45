from __future__ import annotations

import json
from unittest.mock import patch

WALLET = "0x" + "aa" * 20
TOKEN = "0x" + "11" * 20
RECIPIENT = "0x" + "22" * 20

BALANCE = 10**30
RECEIPT = {
    "transactionHash": bytes.fromhex("ab" * 32),
    "blockHash": bytes.fromhex("cd" * 32),
    "blockNumber": 21_000_000,
    "transactionIndex": 0,
    "from": WALLET,
    "to": TOKEN,
    "status": 1,
    "gasUsed": 51_000,
    "effectiveGasPrice": 9 * 10**14,
    "logs": [],
}


def _tx_output():
    return {
        "txHash": "0x" + "ab" * 32,
        "gasPrice": 9 * 10**14,
        "gasUsed": 51_000,
        "receipt": dict(RECEIPT),
    }


def _automation(client, steps):
    r = client.post("/v1/automations", json={"name": "run me", "walletAddress": WALLET})
    aid = r.json()["id"]
    for node_id, kind, params in steps:
        r = client.post(f"/v1/automations/{aid}/nodes", json={"kind": kind, "params": params, "nodeId": node_id})
        assert r.status_code == 200, r.text
    return aid


def _balance_then_transfer(client):
    return _automation(
        client,
        [
            ("bal", "checkTokenBalance", {"token": TOKEN}),
            (
                "send",
                "transfer",
                {
                    "token": TOKEN,
                    "to": RECIPIENT,
                    "amount": {"type": "previousOutput", "field": "balance", "percentage": 50},
                },
            ),
        ],
    )


def _events(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


@patch("chain.client.ChainClient.transfer_token")
@patch("chain.client.ChainClient.token_balance", return_value=BALANCE)
def test_run_sync_chains_previous_output(mock_balance, mock_transfer, client):
    mock_transfer.return_value = _tx_output()
    aid = _balance_then_transfer(client)

    r = client.post(f"/v1/automations/{aid}/run-sync")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["ok"] is True
    assert body["status"] == "SUCCESS"
    assert body["completed"] == ["bal", "send"]
    assert body["failedNodeId"] is None

    mock_balance.assert_called_once_with(TOKEN, WALLET)
    mock_transfer.assert_called_once_with(token=TOKEN, to=RECIPIENT, amount=BALANCE // 2)

    detail = client.get(f"/v1/executions/{body['executionId']}").json()
    assert detail["isActive"] is True
    assert detail["execution"]["status"] == "SUCCESS"
    logs = {log["node_id"]: log for log in detail["logs"]}
    assert logs["bal"]["output"]["balance"] == str(BALANCE)
    assert logs["send"]["output"]["amount"] == str(BALANCE // 2)
    receipt = logs["send"]["output"]["receipt"]
    assert receipt["hash"] == "0x" + "ab" * 32
    assert receipt["blockNumber"] == "21000000"
    assert receipt["gasPrice"] is None

    statuses = client.get(f"/v1/automations/{aid}/statuses").json()
    assert statuses["runId"] == body["executionId"]
    assert statuses["statuses"] == {"start-1": "initial", "bal": "success", "send": "success"}


@patch("chain.client.ChainClient.transfer_token")
@patch("chain.client.ChainClient.gas_price_wei", return_value=50 * 10**9)
def test_gas_guard_stops_the_run(mock_gas, mock_transfer, client):
    aid = _automation(
        client,
        [
            ("guard", "gasGuard", {"maxGasPrice": "1"}),
            ("send", "transfer", {"token": TOKEN, "to": RECIPIENT, "amount": {"type": "static", "value": "1"}}),
        ],
    )

    body = client.post(f"/v1/automations/{aid}/run-sync").json()
    assert body["ok"] is False
    assert body["status"] == "FAILED"
    assert body["failedNodeId"] == "guard"
    assert body["completed"] == []
    assert body["error"].startswith("Gas Guard stopped automation")
    mock_transfer.assert_not_called()

    statuses = client.get(f"/v1/automations/{aid}/statuses").json()["statuses"]
    assert statuses["guard"] == "error"
    assert statuses["send"] == "initial"

    detail = client.get(f"/v1/executions/{body['executionId']}").json()
    assert detail["execution"]["error"].startswith("Gas Guard stopped automation")
    assert [log["node_id"] for log in detail["logs"]] == ["guard"]
    assert detail["logs"][0]["error_type"] == "blockchain"


@patch("chain.client.ChainClient.token_balance", side_effect=RuntimeError("insufficient funds for transfer"))
def test_failed_node_error_is_classified(mock_balance, client):
    aid = _automation(client, [("bal", "checkTokenBalance", {"token": TOKEN})])

    body = client.post(f"/v1/automations/{aid}/run-sync").json()
    assert body["ok"] is False
    assert body["error"] == "Wallet has insufficient funds for this transaction."


@patch("graph.nodes.wait.time.sleep")
def test_rerun_resets_statuses(mock_sleep, client):
    aid = _automation(client, [("w1", "wait", {"delay": 2})])

    first = client.post(f"/v1/automations/{aid}/run-sync").json()
    second = client.post(f"/v1/automations/{aid}/run-sync").json()
    assert first["ok"] and second["ok"]
    mock_sleep.assert_called_with(2)

    # the first run is no longer the active one
    assert client.get(f"/v1/executions/{first['executionId']}").json()["isActive"] is False
    statuses = client.get(f"/v1/automations/{aid}/statuses").json()
    assert statuses["runId"] == second["executionId"]
    assert statuses["statuses"]["w1"] == "success"


def test_invalid_automation_is_refused(client):
    aid = _automation(client, [("t1", "transferPLS", {})])
    r = client.post(f"/v1/automations/{aid}/run-sync")
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["hardErrors"]["t1"]["to"] == "Recipient address is required"
    assert client.get(f"/v1/automations/{aid}/executions").json() == []


def test_run_with_only_start_node_succeeds(client):
    aid = _automation(client, [])
    body = client.post(f"/v1/automations/{aid}/run-sync").json()
    assert body["ok"] is True
    assert body["completed"] == []


@patch("chain.client.ChainClient.transfer_token")
@patch("chain.client.ChainClient.token_balance", return_value=BALANCE)
def test_run_stream_emits_progress_then_done(mock_balance, mock_transfer, client):
    mock_transfer.return_value = _tx_output()
    aid = _balance_then_transfer(client)

    r = client.post(f"/v1/automations/{aid}/run")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")
    execution_id = r.headers["x-execution-id"]

    events = _events(r.text)
    types = [e["type"] for e in events]
    assert types[0] == "run_started"
    assert types[-1] == "done"
    assert events[-1]["success"] is True
    assert events[-1]["executionId"] == execution_id

    completes = [e for e in events if e["type"] == "node_complete"]
    assert [e["nodeId"] for e in completes] == ["bal", "send"]
    assert completes[0]["data"]["balance"] == str(BALANCE)

    bal_statuses = [e["status"] for e in events if e["type"] == "node_status" and e["nodeId"] == "bal"]
    assert bal_statuses == ["loading", "success"]
    assert "execution_status" in types


@patch("chain.client.ChainClient.token_balance", side_effect=RuntimeError("request timed out"))
def test_run_stream_failure_ends_with_done(mock_balance, client):
    aid = _automation(client, [("bal", "checkTokenBalance", {"token": TOKEN})])

    events = _events(client.post(f"/v1/automations/{aid}/run").text)
    errors = [e for e in events if e["type"] == "node_error"]
    assert errors[0]["nodeId"] == "bal"
    assert errors[0]["errorType"] == "network"
    assert errors[0]["isRetryable"] is True
    assert events[-1]["type"] == "done"
    assert events[-1]["success"] is False


def test_execution_history_and_clear_stale(client):
    aid = _automation(client, [])
    run = client.post(f"/v1/automations/{aid}/run-sync").json()

    history = client.get(f"/v1/automations/{aid}/executions").json()
    assert [h["id"] for h in history] == [run["executionId"]]
    assert client.get(f"/v1/executions/{run['executionId']}/tool-calls").json() == []

    assert client.post("/v1/executions/clear-stale").json() == {"cleared": 0}
