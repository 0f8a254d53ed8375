"""Account deletion fan-out."""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.db.models import OWNED_MODELS, User

logger = logging.getLogger(__name__)


@dataclass
class AccountDeletionResult:
    deleted_tables: list[str] = field(default_factory=list)
    failed_tables: list[str] = field(default_factory=list)

    @property
    def deleted(self) -> bool:
        return not self.failed_tables


async def delete_account(db: AsyncSession, user_id: UUID) -> AccountDeletionResult:
    """
    Delete every row owned by a user, one table at a time, then the user.

    Each table is committed on its own. A failure is logged and recorded
    but does not undo tables that were already cleared; later tables are
    still attempted. The user row is only removed when every owned table
    was cleared.
    """
    result = AccountDeletionResult()

    for model in OWNED_MODELS:
        table = model.__tablename__
        try:
            await db.execute(delete(model).where(model.user_id == user_id))
            await db.commit()
            result.deleted_tables.append(table)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Account deletion failed on table %s for user %s", table, user_id)
            result.failed_tables.append(table)

    if result.failed_tables:
        logger.warning(
            "Account deletion for user %s left data in %s",
            user_id,
            ", ".join(result.failed_tables),
        )
        return result

    try:
        await db.execute(delete(User).where(User.id == user_id))
        await db.commit()
        result.deleted_tables.append(User.__tablename__)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Account deletion failed on users for user %s", user_id)
        result.failed_tables.append(User.__tablename__)

    logger.info("Deleted account %s", user_id)
    return result
