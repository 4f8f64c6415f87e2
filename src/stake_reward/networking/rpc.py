"""
Solana JSON-RPC Client

A small synchronous client for the node's HTTP JSON-RPC interface. It
is always built from an explicit ClusterConfig: the endpoint and the
commitment level travel with the client instead of living in a global
CLI config file.

Based on: https://solana.com/docs/rpc
"""

import itertools
import json
import time
from typing import Any, Dict, List, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..config import ClusterConfig
from ..core.accounts import AccountInfo
from ..core.transactions import Transaction
from ..errors import RPCError

COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


class RPCClient:
    """JSON-RPC 2.0 client bound to one cluster configuration."""

    def __init__(self, config: ClusterConfig, timeout: float = 10.0):
        self.config = config
        self.timeout = timeout
        self._ids = itertools.count(1)

    @property
    def commitment(self) -> str:
        return self.config.commitment

    def _commitment_opts(self, **extra) -> Dict[str, Any]:
        opts = {"commitment": self.commitment}
        opts.update(extra)
        return opts

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Send one JSON-RPC request and return its `result`.

        Raises:
            RPCError: on transport failure, malformed response, or an `error` reply
        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method}
        if params is not None:
            payload["params"] = params

        request = Request(
            self.config.rpc_url,
            data=json.dumps(payload).encode(),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urlopen(request, timeout=self.timeout) as response:
                body = response.read()
        except HTTPError as e:
            raise RPCError(f"{method}: HTTP {e.code} from {self.config.rpc_url}") from e
        except (URLError, OSError) as e:
            raise RPCError(f"{method}: cannot reach {self.config.rpc_url}: {e}") from e

        try:
            reply = json.loads(body)
        except json.JSONDecodeError as e:
            raise RPCError(f"{method}: invalid JSON response") from e

        if not isinstance(reply, dict):
            raise RPCError(f"{method}: malformed response envelope")
        if "error" in reply:
            error = reply["error"]
            if not isinstance(error, dict):
                raise RPCError(f"{method}: malformed error object: {error!r}")
            raise RPCError(error.get("message", "unknown error"),
                           code=error.get("code"), data=error.get("data"))
        if "result" not in reply:
            raise RPCError(f"{method}: response has neither result nor error")
        return reply["result"]

    def check_health(self) -> bool:
        """
        Probe the plain-HTTP /health endpoint.

        Returns True only for an `ok` body; any failure to connect or a
        non-ok status counts as unhealthy rather than raising.
        """
        try:
            with urlopen(self.config.health_url, timeout=self.timeout) as response:
                return response.read().decode().strip() == "ok"
        except (HTTPError, URLError, OSError):
            return False

    def get_health(self) -> str:
        return self.call("getHealth")

    def get_version(self) -> Dict[str, Any]:
        return self.call("getVersion")

    def get_slot(self) -> int:
        return self.call("getSlot", [self._commitment_opts()])

    def get_balance(self, pubkey: str) -> int:
        """Balance in lamports."""
        return self.call("getBalance", [pubkey, self._commitment_opts()])["value"]

    def get_account_info(self, pubkey: str) -> Optional[AccountInfo]:
        """Account state, or None if the account does not exist."""
        result = self.call("getAccountInfo", [pubkey, self._commitment_opts(encoding="base64")])
        value = result["value"]
        return AccountInfo.from_rpc(pubkey, value) if value is not None else None

    def get_program_accounts(self, program_id: str,
                             filters: Optional[List[dict]] = None) -> List[AccountInfo]:
        opts = self._commitment_opts(encoding="base64")
        if filters:
            opts["filters"] = filters
        result = self.call("getProgramAccounts", [program_id, opts])
        return [AccountInfo.from_rpc(item["pubkey"], item["account"]) for item in result]

    def get_latest_blockhash(self) -> str:
        result = self.call("getLatestBlockhash", [self._commitment_opts()])
        return result["value"]["blockhash"]

    def request_airdrop(self, pubkey: str, lamports: int) -> str:
        """Ask a test cluster's faucet for lamports; returns the signature."""
        return self.call("requestAirdrop", [pubkey, lamports, self._commitment_opts()])

    def send_transaction(self, transaction: Transaction, skip_preflight: bool = False) -> str:
        return self.call("sendTransaction", [
            transaction.to_base64(),
            {
                "encoding": "base64",
                "skipPreflight": skip_preflight,
                "preflightCommitment": self.commitment,
            },
        ])

    def get_signature_statuses(self, signatures: List[str]) -> List[Optional[Dict[str, Any]]]:
        result = self.call("getSignatureStatuses", [signatures, {"searchTransactionHistory": True}])
        return result["value"]

    def confirm_transaction(self, signature: str, timeout: float = 30.0,
                            poll_interval: float = 0.5) -> Dict[str, Any]:
        """
        Wait until a signature reaches the client's commitment level.

        Raises:
            RPCError: if the transaction failed or was not confirmed in time
        """
        wanted = COMMITMENT_RANK[self.commitment]
        deadline = time.monotonic() + timeout

        while time.monotonic() < deadline:
            status = self.get_signature_statuses([signature])[0]
            if status is not None:
                if status.get("err") is not None:
                    raise RPCError(f"Transaction {signature} failed", data=status["err"])
                reached = status.get("confirmationStatus")
                if reached is not None and COMMITMENT_RANK.get(reached, -1) >= wanted:
                    return status
            time.sleep(poll_interval)

        raise RPCError(f"Transaction {signature} not {self.commitment} after {timeout:.0f}s")
