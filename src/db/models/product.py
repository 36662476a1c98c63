"""Product ORM model with research metrics.

Risk and consistency labels are stored as plain strings because older
analysis runs wrote legacy labels ("safe", "prohibited"); they are
normalized when rows are converted to domain models.
"""
from sqlalchemy import String, ForeignKey, Integer, Numeric, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from src.db.base import Base, UUIDMixin, TimestampMixin
from decimal import Decimal
from typing import List, Optional, TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from src.db.models.market import Market
    from src.db.models.keyword import ProductKeyword


class Product(Base, UUIDMixin, TimestampMixin):
    """Product found by a market research run.

    Attributes:
        user_id: Owner of the research
        market_id: Market the product was grouped under
        asin: Marketplace identifier
        margin: Profit margin as a fraction (0.35 == 35%)
        profit_estimate: Stored monthly profit estimate
        opportunity_score: AI opportunity seed score (0-10)
        grade: Stored grade bucket (A10..F1)

    Relationships:
        market: Reference to Market
        keyword_links: Linked keywords carrying CPC data
    """

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint('price IS NULL OR price >= 0', name='check_product_price_non_negative'),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    market_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("markets.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    asin: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    brand: Mapped[str | None] = mapped_column(String(255), nullable=True)

    price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    reviews: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rating: Mapped[Decimal | None] = mapped_column(Numeric(3, 2), nullable=True)
    bsr: Mapped[int | None] = mapped_column(Integer, nullable=True)

    monthly_sales: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    monthly_revenue: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    cogs: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    margin: Mapped[Decimal | None] = mapped_column(Numeric(8, 4), nullable=True)
    profit_estimate: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)

    daily_revenue: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    fulfillment_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    launch_budget: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    profit_per_unit: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    weight: Mapped[Decimal | None] = mapped_column(Numeric(10, 3), nullable=True)
    variations: Mapped[int | None] = mapped_column(Integer, nullable=True)

    risk_classification: Mapped[str | None] = mapped_column(String(50), nullable=True)
    consistency_rating: Mapped[str | None] = mapped_column(String(50), nullable=True)
    opportunity_score: Mapped[Decimal | None] = mapped_column(Numeric(4, 2), nullable=True)
    grade: Mapped[str | None] = mapped_column(String(3), nullable=True)

    # Relationships
    market: Mapped[Optional["Market"]] = relationship(back_populates="products")
    keyword_links: Mapped[List["ProductKeyword"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, asin='{self.asin}', grade='{self.grade}')>"
