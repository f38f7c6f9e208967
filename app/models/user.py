import uuid

from sqlalchemy import Column, String, Integer, Float, Text, JSON, DateTime, func, Enum as SQLEnum

from app.core.config import settings
from app.db.base_class import Base
from .enums import Gender


def generate_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_user_id)
    email = Column(String, unique=True, index=True, nullable=False)  # stored lower-cased
    hashed_password = Column(String, nullable=True)  # None for magic-link accounts
    name = Column(String, nullable=False, default="")
    age = Column(Integer, nullable=True, index=True)
    bio = Column(Text, nullable=False, default="")
    personality = Column(Text, nullable=True)
    motivation = Column(Text, nullable=True)
    frustration = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    gender = Column(SQLEnum(Gender, name="gender_enum"), nullable=True)

    longitude = Column(Float, nullable=False, default=lambda: settings.DEFAULT_LONGITUDE)
    latitude = Column(Float, nullable=False, default=lambda: settings.DEFAULT_LATITUDE)

    profile_picture_url = Column(String, nullable=True)
    profile_picture_public_id = Column(String, nullable=True)  # object name at the storage provider

    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
