"""
Organization, User and Property models
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from app.models.base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    """User roles for RBAC"""
    ADMIN = "admin"  # Organization admin - all properties
    PROPERTY_MANAGER = "property_manager"  # Assigned properties, handles tasks
    STAFF = "staff"  # Assigned properties, submits surveys only


class Organization(Base, TimestampMixin):
    """Organization (hotel group) table"""
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    logo_url = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    users = relationship("User", back_populates="organization")
    properties = relationship("Property", back_populates="organization", cascade="all, delete-orphan")


class User(Base, TimestampMixin):
    """
    Portal user. Credentials live with the identity provider;
    this row carries role and organization membership.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)

    # Role & Organization
    role = Column(SQLEnum(UserRole), default=UserRole.STAFF, nullable=False)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    organization = relationship("Organization", back_populates="users")
    assignments = relationship("PropertyAssignment", back_populates="user", cascade="all, delete-orphan")


class Property(Base, TimestampMixin):
    """A hotel / villa property surveyed by staff and guests"""
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False, unique=True)
    location = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Default assignee for remediation tasks
    primary_pm_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    organization = relationship("Organization", back_populates="properties")
    primary_pm = relationship("User", foreign_keys=[primary_pm_id])
    assignments = relationship("PropertyAssignment", back_populates="property", cascade="all, delete-orphan")


class PropertyAssignment(Base, TimestampMixin):
    """Grants a property_manager or staff user access to one property"""
    __tablename__ = "property_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="property_assignments_user_property_unique"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="assignments")
    property = relationship("Property", back_populates="assignments")
