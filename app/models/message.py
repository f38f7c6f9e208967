from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index

from app.db.base_class import Base
from app.utils.time import utcnow


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    edited_at = Column(DateTime(timezone=True), nullable=True)  # Stores timestamp of last edit
    is_deleted = Column(Boolean, default=False, nullable=False)  # Flag for soft deletion

    __table_args__ = (
        Index('ix_messages_pair_created', 'sender_id', 'recipient_id', 'created_at'),
    )
