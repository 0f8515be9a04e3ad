"""
Site path resolution for the content store.

Maps root-relative paths to items and languages and back:
- default-language paths carry no prefix: /about/contact/
- other languages are prefixed with the language name: /fr/a-propos/contact/
- each segment matches the item's localized name, falling back to the default name
- segments left over after the deepest match are URL segments, allowed only
  when the matched item's template enables them
"""

import logging
from typing import List, Optional

from .models import Item, Language, PathInfo
from .schema import HOME_ITEM_ID
from .store import ContentStore

logger = logging.getLogger(__name__)

# Guard against parent cycles in a damaged tree
MAX_DEPTH = 64


class PathFinder:
    """Resolve site paths to items and build localized paths."""

    def __init__(self, store: ContentStore):
        self.store = store

    def resolve_path(self, href: str) -> PathInfo:
        """
        Resolve a root-relative path (without the install root URL).

        Returns:
            PathInfo with response 200 on a match, 404 otherwise.
        """
        path = href.split("#", 1)[0].split("?", 1)[0]
        segments = [s for s in path.split("/") if s]

        language = self.store.default_language()
        if segments:
            prefixed = self.store.resolve_language(segments[0])
            if prefixed is not None and not prefixed.is_default:
                language = prefixed
                segments = segments[1:]

        item = self.store.get_item(HOME_ITEM_ID)
        if item is None:
            return PathInfo(response=404, language_name=language.name)

        consumed = 0
        for segment in segments:
            child = self.store.find_child(item.id, segment, language)
            if child is None:
                break
            item = child
            consumed += 1

        leftover = segments[consumed:]
        info = PathInfo(
            response=200,
            language_name=language.name,
            item_id=item.id,
            template_id=item.template_id,
            url_segments=leftover,
            url_segment_str="/".join(leftover),
        )

        if leftover:
            template = self.store.get_template(item.template_id)
            if template is None or not template.url_segments:
                info.response = 404
        if not item.published:
            info.response = 404

        logger.debug(f"Resolved {href} -> item {info.item_id} ({info.response}, {language.name})")
        return info

    def _ancestors(self, item: Item) -> List[Item]:
        chain = []
        current: Optional[Item] = item
        while current is not None and current.id != HOME_ITEM_ID and len(chain) < MAX_DEPTH:
            chain.append(current)
            current = self.store.get_item(current.parent_id) if current.parent_id else None
        chain.reverse()
        return chain

    def localized_path(self, item_id: int, language: Language) -> str:
        """
        Root-relative path of an item in a language.

        Returns:
            Path with a trailing slash, e.g. "/fr/a-propos/", or "" for unknown items.
        """
        item = self.store.get_item(item_id)
        if item is None:
            return ""
        parts = [] if language.is_default else [language.name]
        parts.extend(self.store.item_name(i, language) for i in self._ancestors(item))
        if not parts:
            return "/"
        return "/" + "/".join(parts) + "/"

    def localized_url(self, item_id: int, language: Language) -> str:
        """Localized path including the install root URL."""
        path = self.localized_path(item_id, language)
        if not path:
            return ""
        return self.store.root_url + path[1:]
