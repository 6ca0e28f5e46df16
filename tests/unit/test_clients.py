"""Unit tests for the JSON-RPC and HTTP clients with a mocked session."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from arch_testing.clients import ArchRpcClient, BitcoinRpcClient, JsonRpcClient, RpcError, TitanClient


def json_response(body: dict, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    return response


def mock_session(client_rpc: JsonRpcClient, *responses: MagicMock) -> MagicMock:
    session = MagicMock()
    session.post.side_effect = list(responses)
    client_rpc.session = session
    return session


class TestJsonRpcClient:
    """Test request building and error handling."""

    def test_call_returns_result(self) -> None:
        rpc = JsonRpcClient("http://127.0.0.1:9002")
        session = mock_session(rpc, json_response({"jsonrpc": "2.0", "id": 1, "result": 42}))

        assert rpc.call("get_block_count") == 42

        session.post.assert_called_once_with(
            "http://127.0.0.1:9002",
            json={"jsonrpc": "2.0", "id": 1, "method": "get_block_count", "params": []},
            timeout=rpc.timeout,
        )

    def test_ids_increase(self) -> None:
        rpc = JsonRpcClient("http://127.0.0.1:9002")
        session = mock_session(rpc, json_response({"result": 1}), json_response({"result": 2}))

        rpc.call("a")
        rpc.call("b")

        ids = [call.kwargs["json"]["id"] for call in session.post.call_args_list]
        assert ids == [1, 2]

    def test_error_object_raises_rpc_error(self) -> None:
        rpc = JsonRpcClient("http://127.0.0.1:9002")
        mock_session(rpc, json_response({"error": {"code": -32601, "message": "Method not found"}}))

        with pytest.raises(RpcError) as exc_info:
            rpc.call("nope")

        assert exc_info.value.code == -32601
        assert exc_info.value.message == "Method not found"

    def test_string_error_raises_rpc_error(self) -> None:
        rpc = JsonRpcClient("http://127.0.0.1:9002")
        mock_session(rpc, json_response({"result": None, "error": "boom"}))

        with pytest.raises(RpcError, match="boom"):
            rpc.call("explode")

    def test_null_error_is_success(self) -> None:
        rpc = JsonRpcClient("http://127.0.0.1:18443", jsonrpc_version="1.0")
        mock_session(rpc, json_response({"result": "ok", "error": None, "id": 1}))

        assert rpc.call("ping") == "ok"

    def test_non_json_http_error(self) -> None:
        rpc = JsonRpcClient("http://127.0.0.1:18443")
        response = MagicMock()
        response.status_code = 401
        response.json.side_effect = ValueError("no json")
        response.raise_for_status.side_effect = requests.HTTPError("401 Unauthorized")
        mock_session(rpc, response)

        with pytest.raises(requests.HTTPError, match="401"):
            rpc.call("getblockcount")

    def test_non_json_success_body(self) -> None:
        rpc = JsonRpcClient("http://127.0.0.1:18443")
        response = MagicMock()
        response.status_code = 200
        response.json.side_effect = ValueError("no json")
        mock_session(rpc, response)

        with pytest.raises(requests.RequestException, match="non-JSON"):
            rpc.call("getblockcount")

    def test_connection_errors_propagate(self) -> None:
        rpc = JsonRpcClient("http://127.0.0.1:9002")
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")
        rpc.session = session

        with pytest.raises(requests.ConnectionError):
            rpc.call("get_block_count")


class TestBitcoinRpcClient:
    def test_uses_basic_auth_and_version_1(self) -> None:
        client = BitcoinRpcClient("http://127.0.0.1:18443/", "user", "secret")

        assert client.rpc.session.auth == ("user", "secret")
        assert client.rpc.jsonrpc_version == "1.0"
        assert client.url == "http://127.0.0.1:18443"

    def test_wallet_calls_use_wallet_endpoint(self) -> None:
        client = BitcoinRpcClient("http://127.0.0.1:18443", "user", "secret")
        session = mock_session(client.rpc, json_response({"result": "bcrt1qaddr"}))

        assert client.get_new_address("testwallet") == "bcrt1qaddr"

        assert session.post.call_args.args[0] == "http://127.0.0.1:18443/wallet/testwallet"

    def test_generate_to_address_params(self) -> None:
        client = BitcoinRpcClient("http://127.0.0.1:18443", "user", "secret")
        session = mock_session(client.rpc, json_response({"result": ["h1", "h2"]}))

        assert client.generate_to_address(2, "bcrt1qaddr") == ["h1", "h2"]

        payload = session.post.call_args.kwargs["json"]
        assert payload["method"] == "generatetoaddress"
        assert payload["params"] == [2, "bcrt1qaddr"]


class TestArchRpcClient:
    def test_get_block_hash_passes_bare_param(self) -> None:
        client = ArchRpcClient("http://127.0.0.1:9002")
        session = mock_session(client.rpc, json_response({"result": "ab" * 32}))

        client.get_block_hash(5)

        assert session.post.call_args.kwargs["json"]["params"] == 5

    def test_wait_for_processed_transaction(self) -> None:
        client = ArchRpcClient("http://127.0.0.1:9002")
        mock_session(
            client.rpc,
            json_response({"result": None}),
            json_response({"result": {"status": "Queued"}}),
            json_response({"result": {"status": "Processed", "bitcoin_txid": None}}),
        )

        with patch("arch_testing.clients.arch.time.sleep"):
            processed = client.wait_for_processed_transaction("txid1", timeout=5, poll_interval=0)

        assert processed["status"] == "Processed"

    def test_wait_for_processed_transaction_times_out(self) -> None:
        client = ArchRpcClient("http://127.0.0.1:9002")
        session = MagicMock()
        session.post.return_value = json_response({"result": {"status": "Queued"}})
        client.rpc.session = session

        with pytest.raises(TimeoutError, match="txid1"):
            client.wait_for_processed_transaction("txid1", timeout=0.05, poll_interval=0.01)


class TestTitanClient:
    def test_get_tip(self) -> None:
        client = TitanClient("http://127.0.0.1:3030/")
        session = MagicMock()
        session.get.return_value = json_response({"height": 101, "hash": "00"})
        client.session = session

        assert client.get_tip() == {"height": 101, "hash": "00"}

        session.get.assert_called_once_with("http://127.0.0.1:3030/tip", timeout=client.timeout)

    def test_http_error_propagates(self) -> None:
        client = TitanClient("http://127.0.0.1:3030")
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("503 Service Unavailable")
        session = MagicMock()
        session.get.return_value = response
        client.session = session

        with pytest.raises(requests.HTTPError):
            client.get_status()
