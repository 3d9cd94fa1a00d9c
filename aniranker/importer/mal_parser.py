"""MyAnimeList list import and export.

MAL exports a list as XML: a ``myinfo`` header whose ``user_export_type``
is ``1`` for anime and ``2`` for manga, followed by one ``anime`` or
``manga`` element per entry. Only finished or in-progress entries are
ranked; a non-zero ``my_score`` becomes the entry's prior rating.

Export writes the new scores back into the original document and sets
``update_on_import`` so MAL applies them on re-import.
"""

import json
import math
import re
from dataclasses import dataclass
from pathlib import Path

from lxml import etree

from aniranker.common.logging import get_logger
from aniranker.common.models import Item, ItemSeed, MediaType

logger = get_logger("importer.mal_parser")

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class _ListLayout:
    entry_tag: str
    id_tag: str
    title_tag: str
    statuses: frozenset[str]


_LAYOUTS: dict[str, _ListLayout] = {
    "anime": _ListLayout(
        entry_tag="anime",
        id_tag="series_animedb_id",
        title_tag="series_title",
        statuses=frozenset({"Completed", "Watching"}),
    ),
    "manga": _ListLayout(
        entry_tag="manga",
        id_tag="manga_mangadb_id",
        title_tag="manga_title",
        statuses=frozenset({"Completed", "Reading"}),
    ),
}


class ListParseError(Exception):
    """Raised when a list export cannot be read."""

    pass


@dataclass(frozen=True)
class ParsedList:
    items: list[ItemSeed]
    original_xml: str
    media_type: MediaType


def _parse_int(text: str | None, default: int = 0) -> int:
    """Leading integer of ``text`` ("8" -> 8, "12abc" -> 12, "" -> default)."""
    if not text:
        return default
    match = _INT_PREFIX.match(text)
    if match is None:
        return default
    return int(match.group(1))


def _child_text(node: etree._Element, tag: str) -> str | None:
    child = node.find(tag)
    if child is None or child.text is None:
        return None
    return child.text.strip()


def _parse_document(xml_content: str) -> etree._Element:
    # Exports carry an encoding declaration, which lxml only accepts on bytes
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        return etree.fromstring(xml_content.encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError as e:
        raise ListParseError(f"Invalid XML format: {e}") from e


def _detect_media_type(root: etree._Element) -> MediaType:
    export_type = root.findtext("myinfo/user_export_type") or root.findtext(
        ".//user_export_type"
    )
    return "manga" if (export_type or "1").strip() == "2" else "anime"


def parse_mal_xml(xml_content: str) -> ParsedList:
    """Parse a MyAnimeList XML export into item seeds.

    Args:
        xml_content: The full export document

    Returns:
        ParsedList with the seeds, the untouched document and the list type

    Raises:
        ListParseError: If the document is not well-formed XML

    Example:
        >>> xml = (
        ...     "<myanimelist><myinfo><user_export_type>1</user_export_type></myinfo>"
        ...     "<anime><series_animedb_id>1</series_animedb_id>"
        ...     "<series_title>Cowboy Bebop</series_title>"
        ...     "<my_score>9</my_score><my_status>Completed</my_status></anime>"
        ...     "</myanimelist>"
        ... )
        >>> parsed = parse_mal_xml(xml)
        >>> parsed.items[0].title, parsed.items[0].prior_rating
        ('Cowboy Bebop', 9.0)
    """
    root = _parse_document(xml_content)
    media_type = _detect_media_type(root)
    layout = _LAYOUTS[media_type]

    seeds: list[ItemSeed] = []
    skipped = 0
    for node in root.iter(layout.entry_tag):
        status = _child_text(node, "my_status") or ""
        if status not in layout.statuses:
            skipped += 1
            continue

        item_id = _parse_int(_child_text(node, layout.id_tag))
        if item_id <= 0:
            skipped += 1
            continue

        score = _parse_int(_child_text(node, "my_score"))
        seeds.append(
            ItemSeed(
                id=item_id,
                title=_child_text(node, layout.title_tag) or "Unknown",
                prior_rating=float(score) if score > 0 else None,
                media_type=media_type,
            )
        )

    logger.info(
        "Parsed MAL export",
        metadata={"media_type": media_type, "items": len(seeds), "skipped": skipped},
    )
    return ParsedList(items=seeds, original_xml=xml_content, media_type=media_type)


def load_mal_file(path: str | Path) -> ParsedList:
    """Read and parse a MAL export file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ListParseError: If the file is not valid XML
    """
    path = Path(path)
    return parse_mal_xml(path.read_text(encoding="utf-8"))


def _score(rating: float) -> int:
    return int(math.floor(rating + 0.5))


def export_mal_xml(original_xml: str, rated_items: list[Item], media_type: MediaType) -> str:
    """Write rounded ratings back into the original MAL export.

    Entries without a rating are left untouched.

    Raises:
        ListParseError: If ``original_xml`` is not valid XML
    """
    root = _parse_document(original_xml)
    layout = _LAYOUTS[media_type]
    ratings = {item.id: item.rating for item in rated_items if item.rating}

    for node in root.iter(layout.entry_tag):
        item_id = _parse_int(_child_text(node, layout.id_tag))
        rating = ratings.get(item_id)
        if not rating:
            continue

        score_node = node.find("my_score")
        if score_node is not None:
            score_node.text = str(_score(rating))

        update_node = node.find("update_on_import")
        if update_node is not None:
            update_node.text = "1"

    return etree.tostring(root, encoding="UTF-8", xml_declaration=True).decode("utf-8")


def export_mal_json(rated_items: list[Item]) -> str:
    """Render ratings in the MAL API list format."""
    data = {
        "data": [
            {
                "node": {
                    "id": item.id,
                    "title": item.title,
                    "main_picture": {"medium": item.image_url, "large": item.image_url}
                    if item.image_url
                    else None,
                },
                "list_status": {
                    "status": "completed",
                    "score": _score(item.rating or 0),
                },
            }
            for item in rated_items
        ]
    }
    return json.dumps(data, indent=2, ensure_ascii=False)
