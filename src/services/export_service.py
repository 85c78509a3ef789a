"""Export bookmarks as a Netscape bookmark file."""
from html import escape

from sqlalchemy.ext.asyncio import AsyncSession

from schemas.bookmark import BookmarkResponse
from services.bookmark_service import BookmarkQuery, list_bookmarks

NETSCAPE_HEADER = [
    "<!DOCTYPE NETSCAPE-Bookmark-file-1>",
    '<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">',
    "<TITLE>Bookmarks</TITLE>",
    "<H1>Bookmarks</H1>",
    "<DL><p>",
]


def _entry_lines(bookmark: BookmarkResponse) -> list[str]:
    added = int(bookmark.date_added.timestamp())
    modified = int(bookmark.date_modified.timestamp())
    toread = "1" if bookmark.unread else "0"
    tags = escape(",".join(bookmark.tag_names))
    title = escape(bookmark.title or bookmark.url)
    lines = [
        f'    <DT><A HREF="{escape(bookmark.url)}" ADD_DATE="{added}" '
        f'LAST_MODIFIED="{modified}" PRIVATE="1" TOREAD="{toread}" '
        f'TAGS="{tags}">{title}</A>',
    ]

    # Description and notes are both free text; keep them in one <DD>
    text = "\n\n".join(part for part in (bookmark.description, bookmark.notes) if part)
    if text:
        lines.append(f"    <DD>{escape(text)}")
    return lines


def render_netscape_html(bookmarks: list[BookmarkResponse]) -> str:
    """Render bookmarks, in the given order, as a Netscape bookmark file."""
    lines = list(NETSCAPE_HEADER)
    for bookmark in bookmarks:
        lines.extend(_entry_lines(bookmark))
    lines.append("</DL><p>")
    return "\n".join(lines) + "\n"


async def export_bookmarks(db: AsyncSession) -> str:
    """Render every bookmark, newest first."""
    bookmarks = await list_bookmarks(db, BookmarkQuery(limit=0))
    return render_netscape_html(bookmarks)
