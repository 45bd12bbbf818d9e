"""Metric history database models."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped

from cloudops.core.database import Base


class MetricHistory(Base):
    """Aggregate metric sample for one service at one collection instant."""

    __tablename__ = "metric_history"
    __table_args__ = (
        Index("idx_metric_history_lookup", "user_id", "service", "metric_name", "timestamp"),
    )

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = Column(String(255), nullable=False, index=True)
    service: Mapped[str] = Column(String(20), nullable=False)  # EC2, S3, RDS, Lambda, EBS
    metric_name: Mapped[str] = Column(String(100), nullable=False)
    value: Mapped[float] = Column(Float, nullable=False)
    timestamp: Mapped[datetime] = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<MetricHistory {self.service}.{self.metric_name}={self.value}>"
