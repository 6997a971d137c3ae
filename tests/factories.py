"""
Test data builders shared by the API and service tests
"""
from app.models.survey import (
    SurveyCategory,
    SurveyQuestion,
    SurveySubcategory,
    SurveyTemplate,
    SurveyType,
)
from app.models.user import Organization, User
from app.services.auth_service import auth_service


def make_headers(user: User) -> dict:
    """Bearer headers for a user"""
    token = auth_service.create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


async def create_template(
    db_session,
    organization: Organization,
    created_by: User,
    survey_type: SurveyType = SurveyType.INTERNAL,
    name: str = "Villa Inspection",
) -> SurveyTemplate:
    """
    Two weighted categories:
    - Housekeeping (weight 2): Bedroom → q0 (1-10), q1 (1-10)
    - Front Desk (weight 1): ungrouped → q2 (1-5), q3 (1-10, optional)
    """
    template = SurveyTemplate(
        organization_id=organization.id,
        name=name,
        survey_type=survey_type,
        version=1,
        is_active=True,
        created_by=created_by.id,
        categories=[
            SurveyCategory(
                name="Housekeeping",
                weight=2.0,
                sort_order=0,
                subcategories=[
                    SurveySubcategory(
                        name="Bedroom",
                        sort_order=0,
                        questions=[
                            SurveyQuestion(text="Bed linen is clean", scale_min=1, scale_max=10, sort_order=0),
                            SurveyQuestion(text="Floors are spotless", scale_min=1, scale_max=10, sort_order=1),
                        ],
                    )
                ],
            ),
            SurveyCategory(
                name="Front Desk",
                weight=1.0,
                sort_order=1,
                subcategories=[
                    SurveySubcategory(
                        name="",
                        sort_order=0,
                        questions=[
                            SurveyQuestion(text="Check-in was quick", scale_min=1, scale_max=5, sort_order=0),
                            SurveyQuestion(
                                text="Concierge was helpful",
                                scale_min=1,
                                scale_max=10,
                                is_required=False,
                                sort_order=1,
                            ),
                        ],
                    )
                ],
            ),
        ],
    )
    db_session.add(template)
    await db_session.commit()
    return template


def question_ids(template: SurveyTemplate) -> list:
    """Question ids in template order"""
    return [
        q.id
        for category in template.categories
        for sub in category.subcategories
        for q in sub.questions
    ]

