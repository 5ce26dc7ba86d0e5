from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from tinylink.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Link(Base):
    __tablename__ = "links"

    code = Column(String(8), primary_key=True)
    url = Column(Text, nullable=False)
    total_clicks = Column(Integer, nullable=False, default=0, server_default="0")
    last_clicked_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, index=True,
        default=utcnow, server_default=func.now(),
    )
