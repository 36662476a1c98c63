"""Market ORM model: a keyword grouping of products owned by one user."""
from sqlalchemy import String, Integer, Numeric, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from src.db.base import Base, UUIDMixin, TimestampMixin
from datetime import datetime
from decimal import Decimal
from typing import List, TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from src.db.models.product import Product


class Market(Base, UUIDMixin, TimestampMixin):
    """Market with the aggregate snapshot written at research time.

    The snapshot may be partial, so every aggregate column is nullable.
    Persisted user-specific recalculations live in user_market_overrides.

    Attributes:
        user_id: Owner of the market
        keyword: Research keyword
        research_date: When the research run produced the snapshot
        avg_*: Denormalized averages
        market_grade: Grade bucket (A10..F1)
        market_risk_classification: Stored risk label
        market_consistency_rating: Stored consistency label
    """

    __tablename__ = "markets"
    __table_args__ = (
        Index("idx_markets_user_keyword", "user_id", "keyword"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    keyword: Mapped[str] = mapped_column(String(500), nullable=False)
    research_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    avg_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    avg_monthly_sales: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    avg_monthly_revenue: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    avg_daily_revenue: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    avg_profit_margin: Mapped[Decimal | None] = mapped_column(Numeric(8, 4), nullable=True)
    avg_profit_per_unit: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    avg_reviews: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    avg_rating: Mapped[Decimal | None] = mapped_column(Numeric(3, 2), nullable=True)
    avg_bsr: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    avg_cpc: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    avg_launch_budget: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    avg_cogs: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    market_grade: Mapped[str | None] = mapped_column(String(3), nullable=True)
    market_risk_classification: Mapped[str | None] = mapped_column(String(50), nullable=True)
    market_consistency_rating: Mapped[str | None] = mapped_column(String(50), nullable=True)
    opportunity_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_products_analyzed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    products_verified: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Relationships
    products: Mapped[List["Product"]] = relationship(back_populates="market")

    def __repr__(self) -> str:
        return f"<Market(id={self.id}, keyword='{self.keyword}', grade='{self.market_grade}')>"
