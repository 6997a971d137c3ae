"""
Survey template endpoints
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.api.dependencies import get_authorized_caller, require_roles
from app.db.session import get_db
from app.models.survey import SurveyType
from app.models.user import UserRole
from app.schemas.auth import AuthorizedCaller
from app.schemas.template import TemplateCreate, TemplateResponse, TemplateSummary, TemplateUpdate
from app.services import template_service

router = APIRouter()


@router.get("/", response_model=List[TemplateSummary])
async def list_templates(
    survey_type: Optional[SurveyType] = None,
    include_inactive: bool = False,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """
    List templates of the caller's organization.
    Inactive (superseded or deleted) templates are only listed for admins.
    """
    templates = await template_service.list_templates(
        db,
        caller.organization_id,
        survey_type=survey_type,
        include_inactive=include_inactive and caller.is_admin,
    )
    return [TemplateSummary.model_validate(t) for t in templates]


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: int,
    caller: AuthorizedCaller = Depends(get_authorized_caller),
    db: AsyncSession = Depends(get_db)
):
    """Get a template with categories → sub-categories → questions"""
    template = await template_service.get_template(db, template_id, caller.organization_id)
    return TemplateResponse.model_validate(template)


@router.post("/", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_data: TemplateCreate,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a template with its full category tree.
    Requires ADMIN role.
    """
    template = await template_service.create_template(db, caller, template_data)
    return TemplateResponse.model_validate(template)


@router.patch("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: int,
    template_data: TemplateUpdate,
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a template.
    If the template already has submissions and categories are supplied, a
    new version is created and returned; the old version is deactivated.
    Requires ADMIN role.
    """
    template, _ = await template_service.update_template(db, caller, template_id, template_data)
    return TemplateResponse.model_validate(template)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: int,
    hard: bool = Query(False, description="Permanently delete the template and its submissions"),
    caller: AuthorizedCaller = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Deactivate a template, or delete it permanently with ?hard=true.
    Requires ADMIN role.
    """
    await template_service.delete_template(db, caller, template_id, hard=hard)
    return None
