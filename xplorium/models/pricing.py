import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SQLEnum
from sqlalchemy import Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ..database import Base


class PricingCategory(str, enum.Enum):
    PLAYGROUND = "PLAYGROUND"
    SENSORY_ROOM = "SENSORY_ROOM"
    CAFE = "CAFE"
    PARTY = "PARTY"


class PricingStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class PricingPackage(Base):
    __tablename__ = "pricing_packages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="RSD", nullable=False)
    category: Mapped[PricingCategory] = mapped_column(
        SQLEnum(PricingCategory), nullable=False, index=True
    )
    status: Mapped[PricingStatus] = mapped_column(
        SQLEnum(PricingStatus), default=PricingStatus.DRAFT, nullable=False, index=True
    )
    popular: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (Index("idx_pricing_category_status", "category", "status"),)
