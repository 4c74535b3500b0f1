"""
Account Service

Whole-account operations: dashboard stats, data export (JSON / CSV) and
account deletion.

Account deletion:
-----------------
Deletion walks an explicit, ordered list of cleanup steps, children before
parents. Each step has a policy:

- BEST_EFFORT: on failure the step is rolled back (its own SAVEPOINT),
  logged, reported in ``skipped_steps``, and deletion continues
- FATAL: on failure deletion stops with AccountDeletionError and the whole
  request transaction is rolled back

Only removing the content rows and the user row are fatal. Everything else
is best effort; the foreign keys cascade from ``users`` as a backstop so a
skipped step cannot leave rows pointing at a deleted user.
"""

import enum
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kbase.core.errors import (
    AccountDeletionError,
    UnsupportedExportFormatError,
    UserNotFoundError,
)
from kbase.db.base import utcnow
from kbase.db.deps import BestEffortStep
from kbase.models.content import (
    METADATA_MODELS,
    Content,
    ContentList,
    ContentStatus,
    ContentTag,
    ContentType,
    Tag,
    UserList,
)
from kbase.models.user import User, UserPreferences
from kbase.schemas.account import AccountStats

logger = logging.getLogger(__name__)


# ========================================
# Export formatting
# ========================================

class ExportFormat(str, enum.Enum):
    JSON = "json"
    CSV = "csv"

    def __str__(self) -> str:
        return self.value


CSV_HEADER = (
    "id",
    "type",
    "status",
    "title",
    "url",
    "description",
    "summary",
    "rating",
    "personal_notes",
    "created_at",
    "updated_at",
    "completed_at",
    "lists",
    "tags",
    "related_links",
)

MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv; charset=utf-8",
}


def escape_csv(value: str) -> str:
    """
    Quote a CSV field only when it needs it.

    A value containing a comma, a double quote or a newline is wrapped in
    double quotes with inner quotes doubled; anything else is left as is.
    """
    if "," in value or '"' in value or "\n" in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 in UTC. SQLite hands back naive datetimes; they are UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return isoformat(value)
    if isinstance(value, enum.Enum):
        return value.value
    return value


def export_filename(export_format: ExportFormat, today: Optional[datetime] = None) -> str:
    day = (today or utcnow()).date().isoformat()
    return f"kbase-export-{day}.{export_format.value}"


@dataclass
class ExportFile:
    filename: str
    media_type: str
    body: str


# ========================================
# Account deletion
# ========================================

class StepPolicy(str, enum.Enum):
    BEST_EFFORT = "best_effort"
    FATAL = "fatal"


@dataclass
class CleanupStep:
    name: str
    action: Callable[[], Awaitable[Any]]
    policy: StepPolicy = StepPolicy.BEST_EFFORT


@dataclass
class AccountDeletionReport:
    user_id: int
    completed_steps: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)


class AccountService:
    """Service for stats, export and deletion of a whole account."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ========================================
    # Stats
    # ========================================

    async def stats(self, user_id: int) -> AccountStats:
        by_type = dict(
            (await self.db.execute(
                select(Content.type, func.count(Content.id))
                .where(Content.user_id == user_id)
                .group_by(Content.type)
            )).all()
        )
        by_status = dict(
            (await self.db.execute(
                select(Content.status, func.count(Content.id))
                .where(Content.user_id == user_id)
                .group_by(Content.status)
            )).all()
        )
        list_count = await self.db.scalar(
            select(func.count(UserList.id)).where(UserList.user_id == user_id)
        )
        tag_count = await self.db.scalar(
            select(func.count(Tag.id)).where(Tag.user_id == user_id)
        )

        return AccountStats(
            total_content=sum(by_type.values()),
            videos=by_type.get(ContentType.VIDEO, 0),
            articles=by_type.get(ContentType.ARTICLE, 0),
            books=by_type.get(ContentType.BOOK, 0),
            pending=by_status.get(ContentStatus.PENDING, 0),
            completed=by_status.get(ContentStatus.COMPLETED, 0),
            lists=list_count or 0,
            tags=tag_count or 0,
        )

    # ========================================
    # Export
    # ========================================

    async def build_export(self, user: User) -> Dict[str, Any]:
        """
        Everything the user owns as one JSON-ready document.

        Stats are computed from the exported rows themselves, so they always
        agree with the ``content`` array.
        """
        result = await self.db.execute(
            select(Content)
            .where(Content.user_id == user.id)
            .order_by(Content.created_at.desc(), Content.id.desc())
            .execution_options(populate_existing=True)
        )
        contents = list(result.scalars().all())

        lists = list((await self.db.execute(
            select(UserList).where(UserList.user_id == user.id).order_by(UserList.id)
        )).scalars().all())
        tags = list((await self.db.execute(
            select(Tag).where(Tag.user_id == user.id).order_by(Tag.id)
        )).scalars().all())

        items = [self._export_item(content) for content in contents]

        return {
            "exported_at": isoformat(utcnow()),
            "user_email": user.email or "",
            "stats": {
                "total_content": len(items),
                "videos": sum(1 for item in items if item["type"] == ContentType.VIDEO.value),
                "articles": sum(1 for item in items if item["type"] == ContentType.ARTICLE.value),
                "books": sum(1 for item in items if item["type"] == ContentType.BOOK.value),
                "lists": len(lists),
                "tags": len(tags),
            },
            "content": items,
            "lists": [
                {
                    "id": user_list.id,
                    "name": user_list.name,
                    "description": user_list.description,
                    "color": user_list.color,
                    "icon": user_list.icon,
                }
                for user_list in lists
            ],
            "tags": [{"id": tag.id, "name": tag.name} for tag in tags],
        }

    @staticmethod
    def _export_item(content: Content) -> Dict[str, Any]:
        record = content.metadata_record
        metadata = (
            {key: jsonable(value) for key, value in record.dict(exclude=("id", "content_id")).items()}
            if record is not None
            else {}
        )
        return {
            "id": content.id,
            "type": jsonable(content.type),
            "status": jsonable(content.status),
            "title": content.title,
            "url": content.url,
            "description": content.description,
            "summary": content.summary,
            "rating": content.rating,
            "personal_notes": content.personal_notes,
            "created_at": isoformat(content.created_at),
            "updated_at": isoformat(content.updated_at),
            "completed_at": isoformat(content.completed_at),
            "related_links": content.related_links or [],
            "metadata": metadata,
            "lists": [user_list.name for user_list in content.lists],
            "tags": [tag.name for tag in content.tags],
        }

    @staticmethod
    def render_csv(document: Dict[str, Any]) -> str:
        """One row per content item. Rows are joined with "\\n", no trailing newline."""
        rows = [",".join(CSV_HEADER)]
        for item in document["content"]:
            links = "; ".join(f"{link['title']}: {link['url']}" for link in item["related_links"])
            rows.append(",".join([
                escape_csv(str(item["id"])),
                escape_csv(item["type"]),
                escape_csv(item["status"]),
                escape_csv(item["title"]),
                escape_csv(item["url"] or ""),
                escape_csv(item["description"] or ""),
                escape_csv(item["summary"] or ""),
                str(item["rating"]) if item["rating"] is not None else "",
                escape_csv(item["personal_notes"] or ""),
                escape_csv(item["created_at"]),
                escape_csv(item["updated_at"]),
                escape_csv(item["completed_at"] or ""),
                escape_csv("; ".join(item["lists"])),
                escape_csv("; ".join(item["tags"])),
                escape_csv(links),
            ]))
        return "\n".join(rows)

    async def export(self, user: User, export_format: str) -> ExportFile:
        """
        Export the account as a downloadable file.

        Raises:
            UnsupportedExportFormatError: format is not "json" or "csv"
        """
        try:
            fmt = ExportFormat(export_format)
        except ValueError:
            raise UnsupportedExportFormatError("Invalid format. Use 'json' or 'csv'")

        document = await self.build_export(user)
        if fmt == ExportFormat.JSON:
            body = json.dumps(document, indent=2, ensure_ascii=False)
        else:
            body = self.render_csv(document)

        logger.info(
            f"Exported {document['stats']['total_content']} item(s) for user {user.id} as {fmt}"
        )
        return ExportFile(
            filename=export_filename(fmt),
            media_type=MEDIA_TYPES[fmt],
            body=body,
        )

    # ========================================
    # Deletion
    # ========================================

    def _cleanup_steps(self, user_id: int, content_ids: List[int]) -> List[CleanupStep]:
        """Ordered deletion plan: associations, metadata, content, then the user's own rows."""

        def remove(statement):
            async def action():
                await self.db.execute(statement)
            return action

        steps = [
            CleanupStep(
                "content_lists",
                remove(delete(ContentList).where(ContentList.content_id.in_(content_ids))),
            ),
            CleanupStep(
                "content_tags",
                remove(delete(ContentTag).where(ContentTag.content_id.in_(content_ids))),
            ),
        ]
        for content_type, model in METADATA_MODELS.items():
            steps.append(CleanupStep(
                f"{content_type.value}_metadata",
                remove(delete(model).where(model.content_id.in_(content_ids))),
            ))
        steps += [
            CleanupStep(
                "content",
                remove(delete(Content).where(Content.user_id == user_id)),
                StepPolicy.FATAL,
            ),
            CleanupStep("lists", remove(delete(UserList).where(UserList.user_id == user_id))),
            CleanupStep("tags", remove(delete(Tag).where(Tag.user_id == user_id))),
            CleanupStep(
                "user_preferences",
                remove(delete(UserPreferences).where(UserPreferences.user_id == user_id)),
            ),
            CleanupStep(
                "user",
                remove(delete(User).where(User.id == user_id)),
                StepPolicy.FATAL,
            ),
        ]
        return steps

    async def delete_account(self, user_id: int) -> AccountDeletionReport:
        """
        Delete the user and everything they own.

        Raises:
            UserNotFoundError: no such user
            AccountDeletionError: a FATAL step failed; nothing is committed
        """
        exists = await self.db.scalar(select(User.id).where(User.id == user_id))
        if exists is None:
            raise UserNotFoundError()

        content_ids = list((await self.db.execute(
            select(Content.id).where(Content.user_id == user_id)
        )).scalars().all())

        report = AccountDeletionReport(user_id=user_id)
        for step in self._cleanup_steps(user_id, content_ids):
            if step.policy == StepPolicy.FATAL:
                try:
                    async with self.db.begin_nested():
                        await step.action()
                except Exception as e:
                    logger.error(f"Account deletion for user {user_id} failed at '{step.name}': {e}")
                    raise AccountDeletionError(step.name) from e
                report.completed_steps.append(step.name)
                continue

            async with BestEffortStep(self.db, f"delete_account.{step.name}", user_id=user_id) as cleanup:
                await step.action()
            if cleanup.failed:
                report.skipped_steps.append(step.name)
            else:
                report.completed_steps.append(step.name)

        logger.info(
            f"Deleted account {user_id} ({len(content_ids)} content item(s), "
            f"skipped: {report.skipped_steps or 'none'})"
        )
        return report


def get_account_service(db: AsyncSession) -> AccountService:
    return AccountService(db)
