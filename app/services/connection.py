import logging

import httpx

from app.states.form import MintInfo

logger = logging.getLogger(__name__)

MAINNET = "mainnet-beta"
DEVNET = "devnet"


def cluster_from_endpoint(endpoint: str) -> str:
    """Определяет кластер Solana по адресу RPC-ноды (по умолчанию mainnet)."""
    return DEVNET if "devnet" in endpoint.lower() else MAINNET


class Connection:
    """Минимальный JSON-RPC клиент Solana.

    Передаётся в сборку инструкций как есть; сам ходит в сеть только
    для обновления метаданных минтов в каталоге аккаунтов.
    """

    def __init__(self, rpc_endpoint: str, timeout: float = 10.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.rpc_endpoint = rpc_endpoint
        self.cluster = cluster_from_endpoint(rpc_endpoint)
        self._timeout = timeout
        self._transport = transport
        self._request_id = 0

    async def _call(self, method: str, params: list) -> dict:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(self.rpc_endpoint, json=payload)
            resp.raise_for_status()
            data = resp.json()
        if "error" in data:
            raise RuntimeError(f"RPC {method} failed: {data['error'].get('message')}")
        return data["result"]

    async def get_parsed_account_info(self, pubkey: str) -> dict | None:
        result = await self._call("getAccountInfo", [pubkey, {"encoding": "jsonParsed"}])
        return result.get("value")

    async def get_mint_info(self, mint: str) -> MintInfo:
        value = await self.get_parsed_account_info(mint)
        if not value:
            raise ValueError(f"Mint account not found: {mint}")
        info = value["data"]["parsed"]["info"]
        return MintInfo(decimals=int(info["decimals"]), supply=int(info["supply"]))
