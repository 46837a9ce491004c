"""
test_hive.py - Hive account-name rules, JSON-RPC node failover, username
validation, and the account-creation client.

Network calls go through httpx.MockTransport.
"""

import json

import httpx
import pytest

from signup.errors import InvalidUsername, UpstreamUnavailable
from signup.hive import (
    HiveRpcClient,
    HttpAccountCreator,
    UsernameValidator,
    account_name_error,
)

NODES = ["https://node-a.test", "https://node-b.test"]


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ── Account name rules ──────────────────────────────────────────────────────

class TestAccountNameRules:

    @pytest.mark.parametrize("name", [
        "alice", "bob", "abc", "a-b", "alice123", "hive.blog", "foo-bar.baz",
        "abcdefghijklmnop",
    ])
    def test_valid(self, name):
        assert account_name_error(name) is None

    @pytest.mark.parametrize("name,fragment", [
        ("", "empty"),
        ("ab", "longer"),
        ("abcdefghijklmnopq", "shorter"),
        ("Alice", "start with a lowercase letter"),
        ("1alice", "start with a lowercase letter"),
        ("alice-", "end with a letter or digit"),
        ("al--ice", "one dash"),
        ("ali_ce", "only lowercase letters"),
        ("ab.cde", "segment should be longer"),
        ("abc..def", "segment should be longer"),
    ])
    def test_invalid(self, name, fragment):
        error = account_name_error(name)
        assert error is not None
        assert fragment in error


# ── HiveRpcClient ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestHiveRpcClient:

    async def test_sends_jsonrpc_payload(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": []})

        rpc = HiveRpcClient(NODES, client=_client(handler))
        assert await rpc.get_accounts(["alice"]) == []
        assert seen[0]["method"] == "condenser_api.get_accounts"
        assert seen[0]["params"] == [["alice"]]

    async def test_fails_over_to_next_node(self):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            if request.url.host == "node-a.test":
                return httpx.Response(502)
            return httpx.Response(200, json={"result": [{"name": "alice"}]})

        rpc = HiveRpcClient(NODES, client=_client(handler))
        result = await rpc.get_accounts(["alice"])
        assert result == [{"name": "alice"}]
        assert hosts == ["node-a.test", "node-b.test"]

    async def test_all_nodes_down(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        rpc = HiveRpcClient(NODES, client=_client(handler))
        with pytest.raises(UpstreamUnavailable):
            await rpc.get_accounts(["alice"])

    async def test_rpc_error_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request.url.host)
            return httpx.Response(200, json={"error": {"code": -32602, "message": "bad params"}})

        rpc = HiveRpcClient(NODES, client=_client(handler))
        with pytest.raises(UpstreamUnavailable):
            await rpc.call("condenser_api.get_accounts", [[]])
        assert calls == ["node-a.test"]


# ── UsernameValidator ───────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestUsernameValidator:

    async def test_available_name_passes(self):
        rpc = HiveRpcClient(NODES, client=_client(lambda r: httpx.Response(200, json={"result": []})))
        await UsernameValidator(rpc).validate("newuser")

    async def test_taken_name_rejected(self):
        rpc = HiveRpcClient(
            NODES, client=_client(lambda r: httpx.Response(200, json={"result": [{"name": "alice"}]}))
        )
        with pytest.raises(InvalidUsername, match="taken"):
            await UsernameValidator(rpc).validate("alice")

    async def test_bad_format_skips_network(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"result": []})

        rpc = HiveRpcClient(NODES, client=_client(handler))
        with pytest.raises(InvalidUsername, match="invalid"):
            await UsernameValidator(rpc).validate("Bad_Name")
        assert calls == []


# ── HttpAccountCreator ──────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestHttpAccountCreator:

    async def test_posts_reference_and_username(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(202)

        creator = HttpAccountCreator("https://creator.test/create", client=_client(handler))
        await creator.create("ref-1", "alice")
        assert seen == [{"reference_id": "ref-1", "username": "alice"}]

    async def test_server_error_raises(self):
        creator = HttpAccountCreator(
            "https://creator.test/create", client=_client(lambda r: httpx.Response(500)),
        )
        with pytest.raises(UpstreamUnavailable):
            await creator.create("ref-1", "alice")

    async def test_unconfigured_url_raises(self):
        with pytest.raises(UpstreamUnavailable, match="not configured"):
            await HttpAccountCreator("").create("ref-1", "alice")


def test_rpc_client_requires_nodes():
    with pytest.raises(ValueError):
        HiveRpcClient([])
