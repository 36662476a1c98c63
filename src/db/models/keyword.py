"""Keyword ORM models: keywords with CPC data and their product links."""
from sqlalchemy import String, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from src.db.base import Base, UUIDMixin, TimestampMixin
from decimal import Decimal
from typing import List, TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from src.db.models.product import Product


class Keyword(Base, UUIDMixin, TimestampMixin):
    """Search keyword with its advertising cost-per-click."""

    __tablename__ = "keywords"

    user_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    keyword: Mapped[str] = mapped_column(String(500), nullable=False)
    cpc: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    search_volume: Mapped[int | None] = mapped_column(Integer, nullable=True)

    product_links: Mapped[List["ProductKeyword"]] = relationship(back_populates="keyword")

    def __repr__(self) -> str:
        return f"<Keyword(id={self.id}, keyword='{self.keyword}', cpc={self.cpc})>"


class ProductKeyword(Base, UUIDMixin):
    """Link between a product and a keyword."""

    __tablename__ = "product_keywords"
    __table_args__ = (
        UniqueConstraint("product_id", "keyword_id", name="uq_product_keywords_product_keyword"),
    )

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    keyword_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("keywords.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    product: Mapped["Product"] = relationship(back_populates="keyword_links")
    keyword: Mapped["Keyword"] = relationship(back_populates="product_links", lazy="joined")
