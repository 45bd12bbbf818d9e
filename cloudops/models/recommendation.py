"""Recommendation database models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped

from cloudops.core.database import Base


class Recommendation(Base):
    """Cost-saving recommendation generated from a user's inventory."""

    __tablename__ = "recommendations"
    __table_args__ = (
        Index("idx_recommendations_user_implemented", "user_id", "implemented"),
        Index("idx_recommendations_user_category", "user_id", "category"),
    )

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = Column(String(255), nullable=False, index=True)  # logical owner, no FK
    recommendation_type: Mapped[str] = Column(String(50), nullable=False)  # EC2_IDLE, EBS_UNUSED, ...
    priority: Mapped[str] = Column(String(20), nullable=False)  # High, Medium, Low
    category: Mapped[str] = Column(String(50), nullable=False)  # Compute, Storage, Database
    title: Mapped[str] = Column(String(255), nullable=False)
    description: Mapped[str] = Column(Text, nullable=False)
    estimated_monthly_savings: Mapped[float] = Column(Float, nullable=False, default=0.0)
    estimated_yearly_savings: Mapped[float] = Column(Float, nullable=False, default=0.0)
    difficulty: Mapped[str | None] = Column(String(20))
    implementation_time: Mapped[str | None] = Column(String(50))
    resource_details_json: Mapped[str | None] = Column(Text)  # JSON blob, captured at generation
    impact: Mapped[str | None] = Column(String(50))
    auto_implementable: Mapped[bool] = Column(Boolean, default=False, nullable=False)
    implemented: Mapped[bool] = Column(Boolean, default=False, nullable=False)
    implemented_at: Mapped[datetime | None] = Column(DateTime)
    actual_savings: Mapped[float] = Column(Float, default=0.0, nullable=False)
    verification_status: Mapped[str | None] = Column(String(20))  # verified, failed
    verification_reason: Mapped[str | None] = Column(Text)
    verified_at: Mapped[datetime | None] = Column(DateTime)
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Recommendation {self.recommendation_type} user={self.user_id}: {self.title}>"
