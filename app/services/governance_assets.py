import logging
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.repo.repo import (
    list_account_mints, list_governed_token_accounts, list_streaming_treasuries, update_mint_decimals
)
from app.services.connection import Connection
from app.states.form import GovernedTokenAccount, Treasury

_cache = {"decimals": {}, "timestamp": None}
_CACHE_TTL = timedelta(minutes=10)


class GovernanceAssets:
    """Каталог активов DAO: токен-аккаунты казны и стриминговые аккаунты."""

    def __init__(self, session: AsyncSession, connection: Connection):
        self.session = session
        self.connection = connection
        self._accounts: list[GovernedTokenAccount] = []
        self._treasuries: list[Treasury] = []

    @property
    def governed_token_accounts_without_nfts(self) -> list[GovernedTokenAccount]:
        return [a for a in self._accounts if not a.is_nft]

    @property
    def treasuries(self) -> list[Treasury]:
        return self._treasuries

    async def load(self, governance: str | None = None) -> None:
        self._accounts = await list_governed_token_accounts(self.session, include_nfts=True)
        self._treasuries = await list_streaming_treasuries(self.session, governance)

    async def refresh_mints(self) -> None:
        """Подтягивает актуальную точность минтов из RPC.

        При ошибке сети остаются значения из кэша или из базы.
        Минты берутся из базы, а не из загруженных аккаунтов: строка с минтом,
        но без известной точности, иначе никогда не попала бы в список.
        """
        cache_is_fresh = bool(
            _cache["timestamp"] and datetime.now() - _cache["timestamp"] < _CACHE_TTL
        )
        stored = await list_account_mints(self.session)

        current: dict[str, int] = {}
        fetched: dict[str, int] = {}
        for mint in sorted({m for m, _ in stored}):
            if cache_is_fresh and mint in _cache["decimals"]:
                current[mint] = _cache["decimals"][mint]
                continue
            try:
                info = await self.connection.get_mint_info(mint)
                fetched[mint] = current[mint] = info.decimals
            except Exception as e:
                if mint in _cache["decimals"]:
                    current[mint] = _cache["decimals"][mint]
                    logging.warning(f"[RPC] mint {mint} unavailable, using cached decimals: {e}")
                else:
                    logging.exception(f"[RPC] mint {mint} unavailable, keeping stored decimals")

        stale = sorted({m for m, decimals in stored if m in current and decimals != current[m]})
        for mint in stale:
            await update_mint_decimals(self.session, mint, current[mint])
        if fetched:
            _cache["decimals"].update(fetched)
            _cache["timestamp"] = datetime.now()
        if stale:
            self._accounts = await list_governed_token_accounts(self.session, include_nfts=True)
