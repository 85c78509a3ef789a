"""Service layer for tag operations: registry, reconciliation and garbage collection."""
import logging

from sqlalchemy import delete, exists, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import epoch_now
from models.tag import Tag, bookmark_tags

logger = logging.getLogger(__name__)


class TagRegistryError(Exception):
    """Raised when a tag name resolves to more than one tag row."""

    def __init__(self, tag_name: str, matches: int) -> None:
        self.tag_name = tag_name
        self.matches = matches
        super().__init__(f"Tag '{tag_name}' matched {matches} rows; tag names must be unique")


async def _find_tag_ids(db: AsyncSession, name: str) -> list[int]:
    result = await db.execute(select(Tag.id).where(Tag.name == name))
    return list(result.scalars().all())


async def find_or_create_tag(db: AsyncSession, name: str) -> int:
    """
    Resolve a tag name to its id, creating the tag if it does not exist.

    Args:
        db: Database session.
        name: Exact, case-sensitive tag name.

    Returns:
        The id of the existing or newly created tag.

    Raises:
        TagRegistryError: If more than one tag row has this name.
    """
    tag_ids = await _find_tag_ids(db, name)
    if len(tag_ids) > 1:
        raise TagRegistryError(name, len(tag_ids))
    if tag_ids:
        return tag_ids[0]

    try:
        async with db.begin_nested():
            result = await db.execute(
                insert(Tag).values(name=name, date_added=epoch_now()).returning(Tag.id),
            )
            tag_id = result.scalar_one()
    except IntegrityError:
        # Another request created the same tag between our lookup and insert
        logger.info("Tag '%s' was created concurrently, retrying lookup", name)
        tag_ids = await _find_tag_ids(db, name)
        if len(tag_ids) != 1:
            raise TagRegistryError(name, len(tag_ids)) from None
        return tag_ids[0]

    logger.info("Created tag '%s' (id=%s)", name, tag_id)
    return tag_id


async def delete_tag_if_orphaned(db: AsyncSession, tag_id: int) -> bool:
    """
    Delete a tag that no bookmark references anymore.

    Must be called after the association being removed is already gone. The
    reference check runs at call time and is the final word.

    Returns:
        True if the tag was deleted, False if it is still referenced.
    """
    still_used = await db.scalar(
        select(exists().where(bookmark_tags.c.tag_id == tag_id)),
    )
    if still_used:
        return False

    await db.execute(delete(Tag).where(Tag.id == tag_id))
    logger.info("Deleted orphaned tag id=%s", tag_id)
    return True


async def get_bookmark_tag_ids(db: AsyncSession, bookmark_id: int) -> list[int]:
    """Get the ids of all tags currently linked to a bookmark."""
    result = await db.execute(
        select(bookmark_tags.c.tag_id).where(bookmark_tags.c.bookmark_id == bookmark_id),
    )
    return list(result.scalars().all())


async def _link_tag(db: AsyncSession, bookmark_id: int, tag_id: int) -> None:
    await db.execute(insert(bookmark_tags).values(bookmark_id=bookmark_id, tag_id=tag_id))
    logger.debug("Linked tag id=%s to bookmark id=%s", tag_id, bookmark_id)


async def unlink_tag(db: AsyncSession, bookmark_id: int, tag_id: int) -> None:
    """Remove one bookmark/tag association and garbage-collect the tag if orphaned."""
    await db.execute(
        delete(bookmark_tags).where(
            bookmark_tags.c.bookmark_id == bookmark_id,
            bookmark_tags.c.tag_id == tag_id,
        ),
    )
    logger.debug("Unlinked tag id=%s from bookmark id=%s", tag_id, bookmark_id)
    await delete_tag_if_orphaned(db, tag_id)


async def reconcile_bookmark_tags(
    db: AsyncSession,
    bookmark_id: int,
    tag_names: list[str],
) -> None:
    """
    Move a bookmark's tag set to exactly ``tag_names``.

    Tags in both the old and desired sets are left alone, new names are linked
    (creating the tag on demand), and tags no longer wanted are unlinked and
    deleted once nothing references them.

    Each tag is handled in its own savepoint: a failure is logged and leaves
    that one tag as it was, without undoing tags already processed or stopping
    the remaining ones.

    Args:
        db: Database session.
        bookmark_id: The bookmark whose tags are being set.
        tag_names: Desired tag names in input order. Duplicates and empty names
            are tolerated.
    """
    old_tag_ids = set(await get_bookmark_tag_ids(db, bookmark_id))
    linked_ids: set[int] = set()

    for name in tag_names:
        if not name.strip():
            continue
        try:
            async with db.begin_nested():
                tag_id = await find_or_create_tag(db, name)
                if tag_id in old_tag_ids:
                    # Still wanted, leave the existing link alone
                    old_tag_ids.discard(tag_id)
                    linked_ids.add(tag_id)
                elif tag_id not in linked_ids:
                    await _link_tag(db, bookmark_id, tag_id)
                    linked_ids.add(tag_id)
        except (SQLAlchemyError, TagRegistryError):
            logger.exception(
                "Failed to link tag '%s' to bookmark id=%s", name, bookmark_id,
            )

    for tag_id in old_tag_ids:
        try:
            async with db.begin_nested():
                await unlink_tag(db, bookmark_id, tag_id)
        except SQLAlchemyError:
            logger.exception(
                "Failed to unlink tag id=%s from bookmark id=%s", tag_id, bookmark_id,
            )


async def get_tags(db: AsyncSession) -> list[Tag]:
    """Get every tag, ordered by name."""
    result = await db.execute(select(Tag).order_by(Tag.name.asc(), Tag.id.asc()))
    return list(result.scalars().all())
