"""
Search query parsing and filter compilation for bookmark listing.

A raw query such as ``"#python #rust async runtime"`` is parsed into tag names
and free-text terms, turned into a small filter expression tree, and rendered
into a SQLAlchemy clause on ``Bookmark``:

    AllOf(
        InIdSet(Intersect(TagFilter(("python", "rust")), TextFilter(("async", "runtime")))),
        UnreadFilter(),
    )

Id-set nodes (``TagFilter``, ``TextFilter``, ``Intersect``) render to SELECTs of
bookmark ids. Predicate nodes (``InIdSet``, ``UnreadFilter``, ``AllOf``) render to
boolean clauses. Every user-supplied value ends up as a bound parameter.
"""
from dataclasses import dataclass, field

from sqlalchemy import ColumnElement, CompoundSelect, Select, and_, func, intersect, select

from models.bookmark import Bookmark
from models.tag import Tag, bookmark_tags

TAG_SIGIL = "#"
TEXT_SEARCH_CONFIG = "english"


@dataclass
class SearchQuery:
    """Parsed form of the ``q`` parameter."""

    tag_names: list[str] = field(default_factory=list)
    text: list[str] = field(default_factory=list)


def parse_search(raw: str | None) -> SearchQuery:
    """
    Split a raw query on whitespace into tag names and text terms.

    Tokens starting with ``#`` contribute their remainder to ``tag_names``; every
    other token goes verbatim into ``text``. There is no quoting or escaping. A
    bare ``#`` names no tag and is dropped.
    """
    search = SearchQuery()
    if not raw:
        return search

    for token in raw.split():
        if token.startswith(TAG_SIGIL):
            name = token[len(TAG_SIGIL):]
            if name:
                search.tag_names.append(name)
        else:
            search.text.append(token)
    return search


# --- Id-set nodes ---


@dataclass(frozen=True)
class TagFilter:
    """Ids of bookmarks linked to at least one of ``names`` (OR across names)."""

    names: tuple[str, ...]


@dataclass(frozen=True)
class TextFilter:
    """Ids of bookmarks whose text index matches ``terms`` joined by spaces."""

    terms: tuple[str, ...]


@dataclass(frozen=True)
class Intersect:
    """Ids present in both ``left`` and ``right``."""

    left: "IdSet"
    right: "IdSet"


IdSet = TagFilter | TextFilter | Intersect


# --- Predicate nodes ---


@dataclass(frozen=True)
class InIdSet:
    """Bookmark id belongs to ``source``."""

    source: IdSet


@dataclass(frozen=True)
class UnreadFilter:
    """Bookmark is marked unread."""


@dataclass(frozen=True)
class AllOf:
    """Every clause must hold."""

    clauses: tuple["Predicate", ...]


Predicate = InIdSet | UnreadFilter | AllOf


def build_filter(search: SearchQuery | None, unread_only: bool = False) -> Predicate | None:
    """
    Build the filter tree for a listing request.

    Tag and text constraints are combined by id-set intersection when both are
    present. The unread constraint is ANDed on top. Returns None when nothing
    constrains the result.
    """
    id_sets: list[IdSet] = []
    if search is not None:
        if search.tag_names:
            id_sets.append(TagFilter(tuple(search.tag_names)))
        if search.text:
            id_sets.append(TextFilter(tuple(search.text)))

    clauses: list[Predicate] = []
    if len(id_sets) == 2:
        clauses.append(InIdSet(Intersect(id_sets[0], id_sets[1])))
    elif id_sets:
        clauses.append(InIdSet(id_sets[0]))

    if unread_only:
        clauses.append(UnreadFilter())

    if not clauses:
        return None
    return AllOf(tuple(clauses))


def compile_id_set(node: IdSet) -> Select | CompoundSelect:
    """Render an id-set node to a SELECT returning bookmark ids."""
    if isinstance(node, TagFilter):
        return (
            select(bookmark_tags.c.bookmark_id)
            .join(Tag, bookmark_tags.c.tag_id == Tag.id)
            .where(Tag.name.in_(node.names))
        )
    if isinstance(node, TextFilter):
        tsquery = func.websearch_to_tsquery(TEXT_SEARCH_CONFIG, " ".join(node.terms))
        return select(Bookmark.id).where(Bookmark.search_vector.op("@@")(tsquery))
    if isinstance(node, Intersect):
        return intersect(compile_id_set(node.left), compile_id_set(node.right))
    raise TypeError(f"Unknown id-set node: {node!r}")


def compile_filter(node: Predicate) -> ColumnElement[bool]:
    """Render a predicate node to a boolean clause on ``Bookmark``."""
    if isinstance(node, InIdSet):
        return Bookmark.id.in_(compile_id_set(node.source))
    if isinstance(node, UnreadFilter):
        return Bookmark.unread.is_(True)
    if isinstance(node, AllOf):
        return and_(*(compile_filter(clause) for clause in node.clauses))
    raise TypeError(f"Unknown filter node: {node!r}")
