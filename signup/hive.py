"""
hive.py - Hive network collaborators.

 - HiveRpcClient: JSON-RPC over HTTPS with failover across a node list.
 - UsernameValidator: Hive account-name rules plus an on-chain availability
   lookup.
 - HttpAccountCreator: hands a paid signup to the account-creation service.
"""

import logging
import re
from typing import Any, List, Optional, Sequence

import httpx

from signup.errors import InvalidUsername, UpstreamUnavailable

logger = logging.getLogger("hive")

MIN_ACCOUNT_NAME_LENGTH = 3
MAX_ACCOUNT_NAME_LENGTH = 16

_SEGMENT_RE = re.compile(r"^[a-z][a-z0-9-]*[a-z0-9]$")


def account_name_error(name: str) -> Optional[str]:
    """Return why ``name`` is not a valid Hive account name, or None."""
    if not name:
        return "Account name should not be empty"
    if len(name) < MIN_ACCOUNT_NAME_LENGTH:
        return "Account name should be longer"
    if len(name) > MAX_ACCOUNT_NAME_LENGTH:
        return "Account name should be shorter"
    for segment in name.split("."):
        label = "Each account segment" if "." in name else "Account name"
        if len(segment) < MIN_ACCOUNT_NAME_LENGTH:
            return f"{label} should be longer"
        if not segment[0].isalpha() or not segment[0].islower():
            return f"{label} should start with a lowercase letter"
        if "--" in segment:
            return f"{label} should have only one dash in a row"
        if not _SEGMENT_RE.match(segment):
            if not segment[-1].isalnum():
                return f"{label} should end with a letter or digit"
            return f"{label} should have only lowercase letters, digits, or dashes"
    return None


class HiveRpcClient:
    """Minimal Hive JSON-RPC client. Tries each node in order until one answers."""

    def __init__(self, nodes: Sequence[str], timeout: float = 10.0,
                 client: Optional[httpx.AsyncClient] = None):
        if not nodes:
            raise ValueError("at least one Hive node is required")
        self._nodes = list(nodes)
        self._timeout = timeout
        self._client = client
        self._request_id = 0

    async def call(self, method: str, params: Any) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": self._request_id}
        last_error: Optional[Exception] = None

        for node in self._nodes:
            try:
                data = await self._post(node, payload)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Hive node %s failed for %s: %s", node, method, e)
                last_error = e
                continue
            if "error" in data:
                # a JSON-RPC error is an answer, not an outage
                raise UpstreamUnavailable(f"{method} failed: {data['error']}")
            return data.get("result")

        raise UpstreamUnavailable(f"All Hive nodes failed for {method}: {last_error}")

    async def _post(self, node: str, payload: dict) -> dict:
        if self._client is not None:
            response = await self._client.post(node, json=payload, timeout=self._timeout)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(node, json=payload)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"unexpected JSON-RPC response: {data!r}")
        return data

    async def get_accounts(self, names: List[str]) -> List[dict]:
        return await self.call("condenser_api.get_accounts", [names]) or []


class UsernameValidator:
    """Checks a requested username is well-formed and not yet on chain."""

    def __init__(self, rpc: HiveRpcClient):
        self._rpc = rpc

    async def validate(self, username: str):
        error = account_name_error(username)
        if error:
            raise InvalidUsername(f"Username is invalid: {error}")
        existing = await self._rpc.get_accounts([username])
        if existing:
            raise InvalidUsername(f"Username {username} is already taken")


class HttpAccountCreator:
    """POSTs a paid signup to the account-creation service.

    The service owns key generation and the on-chain create_account
    operation; this side only needs a 2xx back.
    """

    def __init__(self, url: str, timeout: float = 30.0,
                 client: Optional[httpx.AsyncClient] = None):
        self._url = url
        self._timeout = timeout
        self._client = client

    async def create(self, reference_id: str, username: str):
        if not self._url:
            raise UpstreamUnavailable("ACCOUNT_CREATOR_URL is not configured")
        payload = {"reference_id": reference_id, "username": username}
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Account creation request failed: {e!r}") from e
        logger.info("Account creation accepted for %s (ref=%s)", username, reference_id)
