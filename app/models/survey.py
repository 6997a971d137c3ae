"""
Survey models - templates (categories → subcategories → questions),
submissions and responses
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    ForeignKey,
    Float,
    Date,
    DateTime,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
import enum

from app.models.base import Base, TimestampMixin


class SurveyType(str, enum.Enum):
    """Who fills in surveys built from a template"""
    INTERNAL = "internal"  # Staff inspections, can raise tasks
    GUEST = "guest"  # Public guest feedback via link


class SubmissionStatus(str, enum.Enum):
    """Submission lifecycle"""
    DRAFT = "draft"  # Mutable, owned by the submitter
    SUBMITTED = "submitted"  # Final, responses immutable
    REVIEWED = "reviewed"  # Acknowledged by a manager


class SurveyTemplate(Base, TimestampMixin):
    """
    Reusable survey definition. Editing the structure of a template that
    already has submissions creates a new version linked through parent_id.
    """
    __tablename__ = "survey_templates"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    version = Column(Integer, default=1, nullable=False)
    survey_type = Column(SQLEnum(SurveyType), default=SurveyType.INTERNAL, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    parent_id = Column(Integer, ForeignKey("survey_templates.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    categories = relationship(
        "SurveyCategory",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="SurveyCategory.sort_order",
    )
    submissions = relationship("SurveySubmission", back_populates="template", passive_deletes=True)


class SurveyCategory(Base, TimestampMixin):
    """Weighted top-level group of questions"""
    __tablename__ = "survey_categories"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("survey_templates.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    weight = Column(Float, default=1.0, nullable=False)
    sort_order = Column(Integer, nullable=False)

    # Relationships
    template = relationship("SurveyTemplate", back_populates="categories")
    subcategories = relationship(
        "SurveySubcategory",
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="SurveySubcategory.sort_order",
    )


class SurveySubcategory(Base, TimestampMixin):
    """Group of questions inside a category. Empty name means ungrouped."""
    __tablename__ = "survey_subcategories"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("survey_categories.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False, default="")
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False)

    # Relationships
    category = relationship("SurveyCategory", back_populates="subcategories")
    questions = relationship(
        "SurveyQuestion",
        back_populates="subcategory",
        cascade="all, delete-orphan",
        order_by="SurveyQuestion.sort_order",
    )


class SurveyQuestion(Base, TimestampMixin):
    """Single scored question on an integer scale"""
    __tablename__ = "survey_questions"

    id = Column(Integer, primary_key=True, index=True)
    subcategory_id = Column(Integer, ForeignKey("survey_subcategories.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    scale_min = Column(Integer, default=1, nullable=False)
    scale_max = Column(Integer, default=10, nullable=False)
    is_required = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, nullable=False)

    # Relationships
    subcategory = relationship("SurveySubcategory", back_populates="questions")


class GuestSurveyLink(Base, TimestampMixin):
    """
    Public link that lets guests submit a guest-type template for one property.
    Tokens are issued outside this service.
    """
    __tablename__ = "guest_survey_links"
    __table_args__ = (
        UniqueConstraint("template_id", "property_id", name="guest_survey_links_template_property_unique"),
    )

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(255), nullable=False, unique=True, index=True)
    template_id = Column(Integer, ForeignKey("survey_templates.id", ondelete="CASCADE"), nullable=False)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    template = relationship("SurveyTemplate")
    property = relationship("Property")


class SurveySubmission(Base, TimestampMixin):
    """
    One filled-in survey for one property and visit date.
    Either submitted_by (internal) or guest_link_id (guest) is set.
    """
    __tablename__ = "survey_submissions"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("survey_templates.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    submitted_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Guest identity
    guest_name = Column(String(200), nullable=True)
    guest_email = Column(String(320), nullable=True)
    guest_link_id = Column(Integer, ForeignKey("guest_survey_links.id", ondelete="SET NULL"), nullable=True)

    status = Column(SQLEnum(SubmissionStatus), default=SubmissionStatus.DRAFT, nullable=False)
    visit_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)

    # Set only when leaving draft
    submitted_at = Column(DateTime, nullable=True)

    # Relationships
    template = relationship("SurveyTemplate", back_populates="submissions")
    property = relationship("Property")
    submitter = relationship("User", foreign_keys=[submitted_by])
    responses = relationship("SurveyResponse", back_populates="submission", cascade="all, delete-orphan")


class SurveyResponse(Base, TimestampMixin):
    """Answer to one question within a submission"""
    __tablename__ = "survey_responses"
    __table_args__ = (
        UniqueConstraint("submission_id", "question_id", name="survey_responses_submission_question_unique"),
    )

    id = Column(Integer, primary_key=True, index=True)
    submission_id = Column(Integer, ForeignKey("survey_submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("survey_questions.id", ondelete="CASCADE"), nullable=False)

    score = Column(Integer, nullable=False)  # Native question scale
    note = Column(Text, nullable=True)
    issue_description = Column(Text, nullable=True)  # Internal surveys: justifies a task

    # Relationships
    submission = relationship("SurveySubmission", back_populates="responses")
    question = relationship("SurveyQuestion")
