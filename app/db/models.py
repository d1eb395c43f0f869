from __future__ import annotations
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, Boolean, Column, Integer, String, DateTime, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class GovernedAccount(Base):
    """Токен-аккаунт казны DAO (кэш каталога governed-аккаунтов)."""
    __tablename__ = "governed_accounts"
    id = Column(Integer, primary_key=True, autoincrement=True)
    pubkey = Column(String(44), nullable=False)
    governance = Column(String(44), nullable=False)
    realm = Column(String(44), nullable=True)
    owner = Column(String(44), nullable=False)        # владелец токен-аккаунта (native treasury)
    mint = Column(String(44), nullable=True)
    decimals = Column(Integer, nullable=True)
    amount = Column(BigInteger, nullable=True)        # баланс в минимальных единицах
    is_nft = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False, default=0)  # порядок вывода в списке
    updated_at = Column(DateTime(timezone=True), nullable=False,
                        default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("pubkey", name="uq_governed_account_pubkey"),
        Index("ix_governed_account_governance", "governance"),
        Index("ix_governed_account_mint", "mint"),
    )


class StreamingTreasury(Base):
    """Стриминговый аккаунт Mean, доступный как получатель."""
    __tablename__ = "streaming_treasuries"
    id = Column(Integer, primary_key=True, autoincrement=True)
    address = Column(String(44), nullable=False)
    name = Column(String(64), nullable=False)
    associated_token = Column(String(44), nullable=False)
    governance = Column(String(44), nullable=True)    # чья казна владеет стримами
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("address", name="uq_streaming_treasury_address"),
        Index("ix_streaming_treasury_governance", "governance"),
    )
