"""Savings tracking database models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped

from cloudops.core.database import Base


class SavingsTracker(Base):
    """Estimated vs. actual savings of one implemented recommendation.

    One row per recommendation, created when the recommendation is carried out.
    """

    __tablename__ = "savings_tracker"
    __table_args__ = (
        Index("idx_savings_tracker_user_implemented_at", "user_id", "implemented_at"),
    )

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = Column(String(255), nullable=False, index=True)
    recommendation_id: Mapped[int] = Column(
        Integer, ForeignKey("recommendations.id"), nullable=False, unique=True
    )
    implemented_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow, nullable=False)
    estimated_savings: Mapped[float] = Column(Float, nullable=False)
    actual_savings: Mapped[float] = Column(Float, default=0.0, nullable=False)
    verified: Mapped[bool] = Column(Boolean, default=False, nullable=False)
    verified_at: Mapped[datetime | None] = Column(DateTime)
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return (
            f"<SavingsTracker rec={self.recommendation_id}: "
            f"${self.estimated_savings:.2f} est / ${self.actual_savings:.2f} actual>"
        )
