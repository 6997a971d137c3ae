"""
Template service
Builds, versions and retires survey templates (categories → subcategories → questions)
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError
from app.models.survey import (
    GuestSurveyLink,
    SurveyCategory,
    SurveyQuestion,
    SurveyResponse,
    SurveySubcategory,
    SurveySubmission,
    SurveyTemplate,
    SurveyType,
)
from app.models.task import Task
from app.schemas.auth import AuthorizedCaller
from app.schemas.template import CategoryCreate, TemplateCreate, TemplateUpdate

logger = logging.getLogger(__name__)


def template_tree_options():
    """Eager-load the full category tree"""
    return (
        selectinload(SurveyTemplate.categories)
        .selectinload(SurveyCategory.subcategories)
        .selectinload(SurveySubcategory.questions),
    )


def build_categories(categories: List[CategoryCreate]) -> List[SurveyCategory]:
    """ORM category tree from validated input"""
    return [
        SurveyCategory(
            name=cat.name,
            description=cat.description,
            weight=cat.weight,
            sort_order=cat.sort_order,
            subcategories=[
                SurveySubcategory(
                    name=sub.name,
                    description=sub.description,
                    sort_order=sub.sort_order,
                    questions=[
                        SurveyQuestion(
                            text=q.text,
                            description=q.description,
                            scale_min=q.scale_min,
                            scale_max=q.scale_max,
                            is_required=q.is_required,
                            sort_order=q.sort_order,
                        )
                        for q in sub.questions
                    ],
                )
                for sub in cat.subcategories
            ],
        )
        for cat in categories
    ]


async def get_template(
    db: AsyncSession,
    template_id: int,
    organization_id: Optional[int] = None,
) -> SurveyTemplate:
    """
    Load a template with its tree.

    Raises:
        NotFoundError: unknown id, or template of another organization
    """
    result = await db.execute(
        select(SurveyTemplate)
        .where(SurveyTemplate.id == template_id)
        .options(*template_tree_options())
        .execution_options(populate_existing=True)
    )
    template = result.scalar_one_or_none()
    if not template or (organization_id is not None and template.organization_id != organization_id):
        raise NotFoundError("Template", template_id)
    return template


async def list_templates(
    db: AsyncSession,
    organization_id: int,
    survey_type: Optional[SurveyType] = None,
    include_inactive: bool = False,
) -> List[SurveyTemplate]:
    """Templates of an organization, newest first"""
    query = select(SurveyTemplate).where(SurveyTemplate.organization_id == organization_id)
    if not include_inactive:
        query = query.where(SurveyTemplate.is_active == True)
    if survey_type is not None:
        query = query.where(SurveyTemplate.survey_type == survey_type)
    query = query.order_by(SurveyTemplate.created_at.desc(), SurveyTemplate.id.desc())

    result = await db.execute(query)
    return list(result.scalars().all())


async def has_submissions(db: AsyncSession, template_id: int) -> bool:
    result = await db.execute(
        select(func.count()).select_from(SurveySubmission).where(SurveySubmission.template_id == template_id)
    )
    return result.scalar() > 0


async def create_template(
    db: AsyncSession,
    caller: AuthorizedCaller,
    payload: TemplateCreate,
    version: int = 1,
    parent_id: Optional[int] = None,
) -> SurveyTemplate:
    """Create a template and its whole tree in one commit"""
    template = SurveyTemplate(
        organization_id=caller.organization_id,
        name=payload.name,
        description=payload.description,
        survey_type=payload.survey_type,
        version=version,
        parent_id=parent_id,
        created_by=caller.user_id,
        is_active=True,
        categories=build_categories(payload.categories),
    )
    db.add(template)
    await db.commit()

    logger.info(f"Created template {template.id} '{template.name}' v{version} ({template.survey_type.value})")
    return await get_template(db, template.id)


async def update_template(
    db: AsyncSession,
    caller: AuthorizedCaller,
    template_id: int,
    payload: TemplateUpdate,
) -> Tuple[SurveyTemplate, bool]:
    """
    Update a template.

    When new categories are supplied for a template that already has
    submissions, the old template is deactivated and a new version is
    created with parent_id pointing back. Otherwise the template is edited
    in place.

    Returns:
        (template, created_new_version)
    """
    existing = await get_template(db, template_id, caller.organization_id)
    update_data = payload.model_dump(exclude_unset=True, exclude={"categories"})

    if payload.categories is not None and await has_submissions(db, template_id):
        existing.is_active = False
        new_payload = TemplateCreate(
            name=update_data.get("name", existing.name),
            description=update_data.get("description", existing.description),
            survey_type=existing.survey_type,
            categories=payload.categories,
        )
        new_template = await create_template(
            db,
            caller,
            new_payload,
            version=existing.version + 1,
            parent_id=existing.id,
        )
        logger.info(f"Template {template_id} superseded by version {new_template.version} ({new_template.id})")
        return new_template, True

    for field, value in update_data.items():
        setattr(existing, field, value)
    if payload.categories is not None:
        existing.categories = build_categories(payload.categories)

    await db.commit()
    return await get_template(db, template_id), False


async def delete_template(db: AsyncSession, caller: AuthorizedCaller, template_id: int, hard: bool = False) -> None:
    """Soft delete (deactivate) or, with hard=True, remove the template and its submissions"""
    template = await get_template(db, template_id, caller.organization_id)

    if hard:
        submission_ids = select(SurveySubmission.id).where(SurveySubmission.template_id == template_id)
        await db.execute(delete(Task).where(Task.submission_id.in_(submission_ids)))
        await db.execute(delete(SurveyResponse).where(SurveyResponse.submission_id.in_(submission_ids)))
        await db.execute(delete(SurveySubmission).where(SurveySubmission.template_id == template_id))
        await db.execute(delete(GuestSurveyLink).where(GuestSurveyLink.template_id == template_id))
        await db.execute(
            update(SurveyTemplate)
            .where(SurveyTemplate.parent_id == template_id)
            .values(parent_id=None)
        )
        await db.delete(template)
        logger.info(f"Template {template_id} permanently deleted by user {caller.user_id}")
    else:
        await db.execute(
            update(SurveyTemplate)
            .where(SurveyTemplate.id == template_id)
            .values(is_active=False)
        )
        logger.info(f"Template {template_id} deactivated by user {caller.user_id}")

    await db.commit()
