# ============================================================================
# Content Reading Progress
# ============================================================================
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, update, case
from uuid import UUID, uuid4
import logging

from learnquest.core.database import insert_ignoring_conflicts
from learnquest.core.exceptions import PersistenceFailure
from learnquest.core.results import ServiceResult
from learnquest.core.timeutils import utcnow
from learnquest.models.user import User
from learnquest.models.content import Content, ContentProgress
from learnquest.models.gamification import XPAction
from learnquest.models.activity import ActivityEventType
from learnquest.schemas.progress import (
    ContentProgressUpdate, ContentProgressInfo, ContentProgressResult
)
from learnquest.services.gamification.xp_system import XPSystem
from learnquest.services.gamification.achievements import AchievementSystem
from learnquest.services.analytics.activity import ActivityAggregator

logger = logging.getLogger(__name__)

class ContentProgressService:
    """Tracks how far a learner got through articles, tutorials and videos"""

    def __init__(
        self,
        db: AsyncSession,
        xp_system: Optional[XPSystem] = None,
        activity: Optional[ActivityAggregator] = None,
        achievements: Optional[AchievementSystem] = None,
    ):
        self.db = db
        self.xp_system = xp_system or XPSystem(db)
        self.activity = activity or ActivityAggregator(db)
        self.achievements = achievements or AchievementSystem(db, self.xp_system)

    async def update_content_progress(
        self,
        user_id: Optional[UUID],
        content_id: UUID,
        changes: ContentProgressUpdate,
    ) -> ServiceResult[ContentProgressResult]:
        """
        Record reading progress and commit.

        Progress never moves backwards. Any progress pays READ_CONTENT once per
        content; reaching 100 sets `completed_at` once and pays COMPLETE_CONTENT
        plus FIRST_OF_TYPE for the learner's first completed item of that type.
        """
        if user_id is None:
            return ServiceResult.unauthorized()
        if await self.db.scalar(select(User.id).where(User.id == user_id)) is None:
            return ServiceResult.not_found("User")

        content = await self.db.get(Content, content_id)
        if content is None or not content.is_published:
            return ServiceResult.not_found("Content")

        now = utcnow()
        mine = (ContentProgress.user_id == user_id, ContentProgress.content_id == content_id)
        try:
            inserted = await self.db.execute(
                insert_ignoring_conflicts(self.db, ContentProgress)
                .values(
                    id=uuid4(),
                    user_id=user_id,
                    content_id=content_id,
                    progress=0,
                    time_spent=0,
                    started_at=now,
                    updated_at=now,
                )
                .returning(ContentProgress.id)
            )
            first_open = inserted.scalar_one_or_none() is not None

            values = {
                "progress": case(
                    (ContentProgress.progress < changes.progress, changes.progress),
                    else_=ContentProgress.progress,
                ),
                "time_spent": ContentProgress.time_spent + changes.time_spent,
                "updated_at": now,
            }
            if changes.last_position is not None:
                values["last_position"] = changes.last_position
            await self.db.execute(
                update(ContentProgress).where(*mine).values(values)
                .execution_options(synchronize_session=False)
            )

            just_completed = False
            if changes.progress >= 100:
                result = await self.db.execute(
                    update(ContentProgress)
                    .where(*mine, ContentProgress.completed_at.is_(None))
                    .values(completed_at=now)
                    .execution_options(synchronize_session=False)
                )
                just_completed = result.rowcount == 1

            awards = []
            if changes.progress > 0:
                awards.append((XPAction.READ_CONTENT, str(content.id), f"Started reading {content.title}"))
            if just_completed:
                awards.append((XPAction.COMPLETE_CONTENT, str(content.id), f"Completed {content.title}"))
                awards.append((
                    XPAction.FIRST_OF_TYPE,
                    content.content_type.value,
                    f"First {content.content_type.value.lower()} completed",
                ))

            xp_awarded = 0
            level_up = False
            for action, reference, description in awards:
                award = await self.xp_system.apply_award(user_id, action, reference, description)
                xp_awarded += award.xp_awarded + award.bonus_xp
                level_up = level_up or award.level_up

            if changes.progress > 0 and not xp_awarded:
                streak_bonus = await self.xp_system.apply_streak_activity(user_id, now)
                xp_awarded += streak_bonus.xp_awarded
                level_up = level_up or streak_bonus.level_up

            if first_open:
                self.activity.apply_event(
                    user_id,
                    ActivityEventType.CONTENT_VIEW,
                    target_id=content.id,
                    occurred_at=now,
                    details={"content_type": content.content_type.value},
                )

            unlocked = await self.achievements.apply_checks(user_id) if xp_awarded else []
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Progress update on {content_id} for {user_id} failed: {e}")
            raise PersistenceFailure() from e

        if xp_awarded or unlocked:
            await self.xp_system.invalidate_cache(user_id)
        if first_open:
            await self.activity.invalidate_year(user_id, now.year)
        if just_completed:
            logger.info(f"📖 {user_id} completed {content.slug}")

        row = await self._get_progress(user_id, content_id)
        return ServiceResult.ok(ContentProgressResult(
            **self._to_info(row).model_dump(),
            xp_awarded=xp_awarded,
            level_up=level_up,
            just_completed=just_completed,
            achievements_unlocked=[a.slug for a in unlocked],
        ))

    async def get_content_progress(self, user_id: Optional[UUID], content_id: UUID) -> ServiceResult[ContentProgressInfo]:
        if user_id is None:
            return ServiceResult.unauthorized()

        if await self.db.get(Content, content_id) is None:
            return ServiceResult.not_found("Content")

        row = await self._get_progress(user_id, content_id)
        if row is None:
            return ServiceResult.ok(ContentProgressInfo(content_id=content_id))
        return ServiceResult.ok(self._to_info(row))

    async def _get_progress(self, user_id: UUID, content_id: UUID) -> Optional[ContentProgress]:
        return await self.db.scalar(
            select(ContentProgress)
            .where(ContentProgress.user_id == user_id, ContentProgress.content_id == content_id)
            .execution_options(populate_existing=True)
        )

    @staticmethod
    def _to_info(row: ContentProgress) -> ContentProgressInfo:
        return ContentProgressInfo(
            content_id=row.content_id,
            progress=row.progress,
            last_position=row.last_position,
            time_spent=row.time_spent,
            started_at=row.started_at,
            completed_at=row.completed_at,
        )
