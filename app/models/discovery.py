from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint,
    Index, Enum as SQLEnum,
)

from app.db.base_class import Base
from app.utils.time import utcnow
from .enums import InteractionAction


class Like(Base):
    """Directed "liker is interested in liked" edge."""

    __tablename__ = "likes"

    id = Column(Integer, primary_key=True, index=True)
    liker_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    liked_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint('liker_id', 'liked_id', name='_liker_liked_uc'),)


class Match(Base):
    """Undirected edge between two users who liked each other.

    Stored under canonical ordering: user_a is always the smaller id, so the
    unique constraint covers the pair regardless of who liked last.
    """

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    user_a = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user_b = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    matched_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint('user_a', 'user_b', name='_match_pair_uc'),
        CheckConstraint('user_a < user_b', name='ck_match_canonical_order'),
    )

    def partner_of(self, user_id: str) -> str:
        return self.user_b if self.user_a == user_id else self.user_a


class Interaction(Base):
    """Last action a viewer took on a target. One row per ordered pair, overwritten on every action."""

    __tablename__ = "interactions"

    id = Column(Integer, primary_key=True, index=True)
    viewer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    target_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    action = Column(SQLEnum(InteractionAction, name="interaction_action_enum"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint('viewer_id', 'target_id', name='_viewer_target_uc'),
        Index('ix_interactions_viewer_id', 'viewer_id'),
    )
