# Database Models for the Campaign Platform
# Users, role profiles and notifications. Campaign lifecycle tables live in campaign_models.py

from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey, Text, JSON, Enum, Boolean
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import uuid
import enum

Base = declarative_base()

def generate_uuid():
    return str(uuid.uuid4())

# Enums
class UserTypeDB(str, enum.Enum):
    CLIENT = "client"
    AGENCY = "agency"
    INFLUENCER = "influencer"
    ADMIN = "admin"


# Models
class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255))  # credentials are owned by the identity service
    name = Column(String(255))
    user_type = Column(Enum(UserTypeDB, values_callable=lambda x: [e.value for e in x], name="usertypedb"), default=UserTypeDB.CLIENT, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    client_profile = relationship("ClientProfile", back_populates="user", uselist=False)
    agency_profile = relationship("AgencyProfile", back_populates="user", uselist=False)
    influencer_profile = relationship("InfluencerProfile", back_populates="user", uselist=False)

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserTypeDB.ADMIN


class ClientProfile(Base):
    """Brand/client account that owns campaigns."""
    __tablename__ = "client_profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    company_name = Column(String(255))
    contact_phone = Column(String(50))
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="client_profile")


class AgencyProfile(Base):
    """Agency that can manage campaigns and execute them through its own roster."""
    __tablename__ = "agency_profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    agency_name = Column(String(255), nullable=False)
    contact_phone = Column(String(50))
    average_rating = Column(Numeric(3, 1), default=0, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="agency_profile")


class InfluencerProfile(Base):
    __tablename__ = "influencer_profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    display_name = Column(String(100), nullable=False)
    niche = Column(String(100))
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="influencer_profile")


class Notification(Base):
    """User notifications."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20))  # client, admin, agency, influencer

    category = Column(String(50), nullable=False)  # quote_sent, milestone_approved, etc.
    title = Column(String(200), nullable=False)
    message = Column(Text)
    data = Column(JSON)  # Additional context (campaign_id, amount, etc.)

    read = Column(Boolean, default=False)
    read_at = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", backref="notifications")
