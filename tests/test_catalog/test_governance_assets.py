import asyncio

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.db.models import Base, GovernedAccount
from app.repo.repo import (
    add_streaming_treasury, list_governed_token_accounts, list_streaming_treasuries, upsert_governed_account
)
from app.services import governance_assets
from app.services.connection import Connection
from app.services.governance_assets import GovernanceAssets
from app.states.form import GovernedTokenAccount, Governance

USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


@pytest.fixture(autouse=True)
def reset_cache():
    governance_assets._cache.update({"decimals": {}, "timestamp": None})
    yield
    governance_assets._cache.update({"decimals": {}, "timestamp": None})


async def with_session(db_path, fn):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    maker = async_sessionmaker(engine, expire_on_commit=False)
    try:
        async with maker() as session:
            return await fn(session)
    finally:
        await engine.dispose()


def test_repo_keeps_order_and_skips_nfts(tmp_path, catalog, usdc_treasury):
    nft = GovernedTokenAccount(pubkey="Nft1", governance=Governance(pubkey="GovA111"), owner="o", is_nft=True)

    async def scenario(session):
        for acc in [catalog[0], nft, catalog[1], catalog[2]]:
            await upsert_governed_account(session, acc)
        await add_streaming_treasury(session, usdc_treasury, governance="GovA111")
        await add_streaming_treasury(session, usdc_treasury, governance="GovA111")
        return (
            await list_governed_token_accounts(session),
            await list_governed_token_accounts(session, governance="GovB222"),
            await list_streaming_treasuries(session, governance="GovA111"),
        )

    accounts, gov_b, treasuries = asyncio.run(with_session(tmp_path / "catalog.db", scenario))
    assert accounts == [catalog[0], catalog[1], catalog[2]]
    assert [a.pubkey for a in gov_b] == ["UsdcAcc2"]
    assert treasuries == [usdc_treasury]


def test_refresh_updates_decimals_from_rpc(tmp_path, catalog):
    def handler(request):
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"value": {
            "data": {"parsed": {"info": {"decimals": 8, "supply": "1"}}}
        }}})
    connection = Connection("https://rpc.example.org", transport=httpx.MockTransport(handler))

    async def scenario(session):
        await upsert_governed_account(session, catalog[0])
        assets = GovernanceAssets(session, connection)
        await assets.load()
        await assets.refresh_mints()
        return assets.governed_token_accounts_without_nfts

    accounts = asyncio.run(with_session(tmp_path / "refresh.db", scenario))
    assert accounts[0].mint.public_key == USDC
    assert accounts[0].mint.account.decimals == 8


def test_refresh_keeps_stored_decimals_when_rpc_fails(tmp_path, catalog):
    def handler(request):
        raise httpx.ConnectError("down", request=request)
    connection = Connection("https://rpc.example.org", transport=httpx.MockTransport(handler))

    async def scenario(session):
        await upsert_governed_account(session, catalog[0])
        assets = GovernanceAssets(session, connection)
        await assets.load()
        await assets.refresh_mints()
        return assets.governed_token_accounts_without_nfts

    accounts = asyncio.run(with_session(tmp_path / "offline.db", scenario))
    assert accounts[0].mint.account.decimals == 6


def test_refresh_backfills_rows_with_unknown_decimals(tmp_path):
    def handler(request):
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"value": {
            "data": {"parsed": {"info": {"decimals": 6, "supply": "1"}}}
        }}})
    connection = Connection("https://rpc.example.org", transport=httpx.MockTransport(handler))

    async def scenario(session):
        session.add(GovernedAccount(
            pubkey="NoDecimals", governance="GovA111", owner="o", mint=USDC, decimals=None, position=1,
        ))
        await session.commit()
        assets = GovernanceAssets(session, connection)
        await assets.load()
        assert assets.governed_token_accounts_without_nfts[0].mint is None
        await assets.refresh_mints()
        return assets.governed_token_accounts_without_nfts

    accounts = asyncio.run(with_session(tmp_path / "backfill.db", scenario))
    assert accounts[0].mint.public_key == USDC
    assert accounts[0].mint.account.decimals == 6
