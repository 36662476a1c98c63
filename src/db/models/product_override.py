"""User product override ORM model.

One row per (user_id, product_id). Every data column is nullable: NULL
means "not overridden", so the base product value is used.
"""
from sqlalchemy import String, ForeignKey, Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from src.db.base import Base, UUIDMixin, TimestampMixin
from decimal import Decimal
import uuid


class ProductOverride(Base, UUIDMixin, TimestampMixin):
    """Sparse user patch for one product."""

    __tablename__ = "user_product_overrides"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_user_product_overrides_user_product"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    asin: Mapped[str | None] = mapped_column(String(20), nullable=True)

    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    brand: Mapped[str | None] = mapped_column(String(255), nullable=True)
    price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    bsr: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reviews: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rating: Mapped[Decimal | None] = mapped_column(Numeric(3, 2), nullable=True)

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
    avg_cpc: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)

    risk_classification: Mapped[str | None] = mapped_column(String(50), nullable=True)
    consistency_rating: Mapped[str | None] = mapped_column(String(50), nullable=True)
    opportunity_score: Mapped[Decimal | None] = mapped_column(Numeric(4, 2), nullable=True)
    grade: Mapped[str | None] = mapped_column(String(3), nullable=True)

    override_reason: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ProductOverride(id={self.id}, product_id={self.product_id}, user_id={self.user_id})>"
