"""User market override ORM model.

Persisted result of a market recalculation. Exactly one row per
(user_id, market_id); recalculations upsert on that pair.
"""
from sqlalchemy import String, ForeignKey, Integer, Numeric, Text, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from src.db.base import Base, UUIDMixin, TimestampMixin
from datetime import datetime
from decimal import Decimal
import uuid


class MarketOverride(Base, UUIDMixin, TimestampMixin):
    """Market statistics recalculated from a user's product overrides."""

    __tablename__ = "user_market_overrides"
    __table_args__ = (
        UniqueConstraint("user_id", "market_id", name="uq_user_market_overrides_user_market"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    market_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("markets.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    keyword: Mapped[str] = mapped_column(String(500), nullable=False, server_default="")

    avg_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, server_default="0")
    avg_monthly_sales: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    avg_monthly_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, server_default="0")
    avg_daily_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, server_default="0")
    avg_profit_margin: Mapped[Decimal] = mapped_column(Numeric(8, 4), nullable=False, server_default="0")
    avg_profit_per_unit: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, server_default="0")
    avg_reviews: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    avg_rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False, server_default="0")
    avg_bsr: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    avg_cpc: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, server_default="0")
    avg_launch_budget: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, server_default="0")
    avg_cogs: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, server_default="0")

    market_grade: Mapped[str] = mapped_column(String(3), nullable=False, server_default="F1")
    market_risk_classification: Mapped[str] = mapped_column(String(50), nullable=False, server_default="NoRisk")
    market_consistency_rating: Mapped[str] = mapped_column(String(50), nullable=False, server_default="Consistent")
    opportunity_score: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_products_analyzed: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    products_verified: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    override_reason: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    recalculation_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<MarketOverride(market_id={self.market_id}, user_id={self.user_id}, grade='{self.market_grade}')>"
