"""
Hyperlink localization for markup values.

When a translated markup value is written back, links inside it still point at
source-language paths. LinkLocalizer rewrites every root-relative <a href> that
resolves to a source-language item into the equivalent target-language path,
keeping query string, fragment, URL segments and trailing slash.
"""

import logging
import re
from typing import Optional, Tuple

from .models import Language, Row, RowType
from .pathfinder import PathFinder
from .store import ContentStore

logger = logging.getLogger(__name__)

_HREF_RE = re.compile(r'<a\s[^>]*?href="(/[^"]+)"')


class LinkLocalizer:
    """Rewrite internal links from source-language paths to target-language paths."""

    def __init__(self, store: ContentStore, pathfinder: Optional[PathFinder] = None):
        self.store = store
        self.pathfinder = pathfinder or PathFinder(store)

    def localize(self, markup: str, source: Language, target: Language) -> Tuple[str, int]:
        """
        Rewrite links in markup.

        Returns:
            Tuple of (new markup, number of links rewritten).
        """
        if not markup or ' href="/' not in markup:
            return markup, 0

        root_url = self.store.root_url
        num_updated = 0

        for source_href in _HREF_RE.findall(markup):
            href = source_href
            has_root_url = False

            if root_url != "/" and href.startswith(root_url):
                href = href[len(root_url) - 1:]
                has_root_url = True

            query_string = ""
            fragment = ""
            if "#" in href[1:]:
                href, fragment = href.split("#", 1)
                fragment = f"#{fragment}"
            if "?" in href[1:]:
                href, query_string = href.split("?", 1)
                query_string = f"?{query_string}"

            trailing_slash = href.endswith("/")
            info = self.pathfinder.resolve_path(href)

            if not info.ok:
                continue
            # link to another language, may already be translated
            if info.language_name != source.name:
                continue
            if info.language_name == target.name:
                continue
            if self.store.get_item(info.item_id) is None:
                continue

            target_href = self.pathfinder.localized_url(info.item_id, target)
            if not target_href:
                continue
            if not has_root_url and root_url != "/" and target_href.startswith(root_url):
                target_href = target_href[len(root_url) - 1:]
            if info.url_segment_str:
                target_href = target_href.rstrip("/") + "/" + info.url_segment_str
            if trailing_slash:
                target_href = target_href.rstrip("/") + "/"
            target_href += query_string + fragment

            if target_href == source_href:
                continue

            quoted = f'"{source_href}"'
            count = markup.count(quoted)
            markup = markup.replace(quoted, f'"{target_href}"')
            num_updated += count
            logger.debug(f"Localized link {source_href} -> {target_href} ({count}x)")

        return markup, num_updated

    def localize_row(self, row: Row, source: Language, target: Language) -> int:
        """Localize links in a markup row's target in place. Returns the count."""
        if row.type is not RowType.MARKUP:
            return 0
        row.target, count = self.localize(row.target, source, target)
        return count
