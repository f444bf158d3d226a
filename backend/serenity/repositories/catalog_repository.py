"""Read-only queries over the service and consultant catalogs.

These are coarse SQL prefilters; the recommendation engine re-checks the
match and applies the final cap.
"""

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.models.catalog import ConsultingService
from serenity.models.profiles import ConsultantProfile
from serenity.models.user import User


def _holds_any(column, values: list[str]):
    """The JSONB string array ``column`` holds one of ``values``, ignoring case."""
    element = func.jsonb_array_elements_text(column).table_valued("value")
    return (
        select(element.c.value)
        .where(func.lower(element.c.value).in_([v.lower() for v in values]))
        .exists()
    )


class CatalogRepository:
    """Stateless repository for catalog lookups."""

    @staticmethod
    async def list_published_services(
        db: AsyncSession, interests: list[str], limit: int
    ) -> list[ConsultingService]:
        """Published services whose name or category is one of ``interests``.

        Comparison is case-insensitive. Results come in creation order.
        """
        if not interests:
            return []
        lowered = [i.lower() for i in interests]
        stmt = (
            select(ConsultingService)
            .where(
                ConsultingService.status == "published",
                or_(
                    func.lower(ConsultingService.name).in_(lowered),
                    func.lower(ConsultingService.category).in_(lowered),
                ),
            )
            .order_by(ConsultingService.created_at, ConsultingService.id)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_available_consultants(
        db: AsyncSession,
        interests: list[str],
        industries: list[str],
        limit: int,
    ) -> list[tuple[ConsultantProfile, User]]:
        """Consultants open for work whose profile lines up with the client.

        A profile matches when a skill is one of ``interests``, an industry
        is one of ``industries``, or its primary specialty is an interest.
        Comparison is case-insensitive.
        """
        conditions = []
        if interests:
            conditions.append(_holds_any(ConsultantProfile.skills, interests))
            conditions.append(
                func.lower(ConsultantProfile.primary_specialty).in_(
                    [i.lower() for i in interests]
                )
            )
        if industries:
            conditions.append(_holds_any(ConsultantProfile.industries, industries))
        if not conditions:
            return []

        stmt = (
            select(ConsultantProfile, User)
            .join(User, User.id == ConsultantProfile.user_id)
            .where(
                User.role == "consultant",
                ConsultantProfile.available_for_work.is_(True),
                or_(*conditions),
            )
            .order_by(ConsultantProfile.created_at, ConsultantProfile.id)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return [(profile, user) for profile, user in result.all()]


