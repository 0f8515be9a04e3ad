"""Test configuration and fixtures for langport tests."""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict

import pytest

# Add src to path for development testing
_src_dir = Path(__file__).parent.parent / "src"
if _src_dir.exists():
    sys.path.insert(0, str(_src_dir))

from langport.models import Field, Language  # noqa: E402
from langport.schema import OPTIONAL_FIELDTYPES, init_db  # noqa: E402
from langport.store import ContentStore  # noqa: E402

# Language id of the second language; default language is always id 1
FRENCH_ID = 5

ABOUT_BODY = '<p>See <a href="/contact/">contact</a></p>'


@dataclass
class Site:
    """A small content tree used across the test modules."""

    store: ContentStore
    default: Language
    french: Language
    about: int
    contact: int
    fields: Dict[str, Field] = field(default_factory=dict)

    # set by the nested_site fixture
    landing: int = 0
    block_a: int = 0
    block_b: int = 0
    meta_item: int = 0

    def scalar(self, field_name: str, item_id: int, column: str = "data"):
        row = self.store.conn.execute(
            f"SELECT {column} FROM field_{field_name} WHERE pages_id = ?", (item_id,)
        ).fetchone()
        return row[0] if row else None

    def cell(self, item_id: int, row_id: int, column: str):
        row = self.store.conn.execute(
            f"SELECT {column} FROM field_specs WHERE pages_id = ? AND data = ?",
            (item_id, row_id),
        ).fetchone()
        return row[0] if row else None

    def description(self, item_id: int, filename: str):
        row = self.store.conn.execute(
            "SELECT description FROM field_images WHERE pages_id = ? AND data = ?",
            (item_id, filename),
        ).fetchone()
        return row[0] if row else None

    def snapshot(self) -> Dict[str, list]:
        """All rows of every field table, for before/after comparisons."""
        tables = [
            r[0] for r in self.store.conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name GLOB 'field_*' "
                "ORDER BY name"
            )
        ]
        return {
            t: [tuple(r) for r in self.store.conn.execute(f"SELECT * FROM {t} ORDER BY 1, 2")]
            for t in tables
        }


def build_site(db_path: Path, root_url: str = "/") -> Site:
    """
    Create a content store with one populated "about" item and a "contact" item.

    Fields of the "basic" template, in order:
    title (PageTitleLanguage), summary (TextareaLanguage), body (TextareaLanguage
    holding HTML), specs (Table), blurbs (Textareas), images (Image).
    """
    init_db(db_path, default_language="default", default_title="English")
    store = ContentStore(db_path, root_url=root_url)
    for name in OPTIONAL_FIELDTYPES:
        store.install_fieldtype(name)
    french = store.add_language("fr", "French", language_id=FRENCH_ID)

    fields = {
        "title": store.create_field("title", "PageTitleLanguage"),
        "summary": store.create_field("summary", "TextareaLanguage"),
        "body": store.create_field("body", "TextareaLanguage", content_type=1),
        "specs": store.create_field(
            "specs",
            "Table",
            columns=[
                {"name": "label", "type": "textLanguage"},
                {"name": "notes", "type": "textareaLanguage"},
                {"name": "sku", "type": "text"},
            ],
        ),
        "blurbs": store.create_field(
            "blurbs", "Textareas", multilang=True, inputfield_class="InputfieldText"
        ),
        "images": store.create_field("images", "Image"),
    }
    basic = store.create_template(
        "basic", ["title", "summary", "body", "specs", "blurbs", "images"]
    )

    about = store.add_item("about", basic, names={FRENCH_ID: "a-propos"})
    contact = store.add_item("contact", basic, names={FRENCH_ID: "contact-fr"})

    store.insert("field_title", {"pages_id": about, "data": "About"})
    store.insert("field_summary", {"pages_id": about, "data": "Short", "data5": "Court"})
    store.insert("field_body", {"pages_id": about, "data": ABOUT_BODY})
    store.insert("field_specs", {
        "pages_id": about, "data": 1, "sort": 0,
        "label": "1:Color\r5:Couleur", "notes": "1:Bright red", "sku": "R-1",
    })
    store.insert("field_specs", {
        "pages_id": about, "data": 2, "sort": 1, "label": "Size", "sku": "S-2",
    })
    store.insert("field_blurbs", {
        "pages_id": about, "data": "intro:Hello\rintro___5:Bonjour\routro:Bye",
    })
    store.insert("field_images", {
        "pages_id": about, "data": "door.jpg", "sort": 0,
        "description": '{"0":"desc-en","5":"desc-fr"}',
    })
    store.insert("field_images", {
        "pages_id": about, "data": "plain.jpg", "sort": 1, "description": "A plain one",
    })

    store.insert("field_title", {"pages_id": contact, "data": "Contact"})

    return Site(
        store=store,
        default=store.default_language(),
        french=french,
        about=about,
        contact=contact,
        fields=fields,
    )


# ==============================================================================
# Shared pytest fixtures
# ==============================================================================

@pytest.fixture
def db_path(tmp_path) -> Path:
    """Return the path to a fresh, initialized content store."""
    return init_db(tmp_path / "site.db")


@pytest.fixture
def site_factory(tmp_path) -> Callable[..., Site]:
    """Return a function building independent sites (one database each)."""
    created = []

    def make(name: str = "site.db", root_url: str = "/") -> Site:
        site = build_site(tmp_path / name, root_url=root_url)
        created.append(site)
        return site

    yield make

    for site in created:
        site.store.close()


@pytest.fixture
def site(site_factory) -> Site:
    """Return the standard populated site."""
    return site_factory()


@pytest.fixture
def nested_site(site) -> Site:
    """
    Extend the standard site with container fields.

    Adds a "landing" item whose template has a title, a repeater "blocks"
    with two children (each with title and body), a fieldset "meta" and a page
    table "related" referencing the about item.
    """
    store = site.store
    site.fields["blocks"] = store.create_field("blocks", "Repeater")
    site.fields["meta"] = store.create_field("meta", "FieldsetPage")
    site.fields["related"] = store.create_field("related", "PageTable")

    block = store.create_template("block", ["title", "body"])
    meta = store.create_template("meta_fieldset", ["summary"])
    landing = store.create_template("landing", ["blocks", "title", "meta", "related"])

    site.landing = store.add_item("landing", landing)
    store.insert("field_title", {"pages_id": site.landing, "data": "Landing"})

    site.block_a = store.add_repeater_item(site.landing, site.fields["blocks"], block)
    site.block_b = store.add_repeater_item(site.landing, site.fields["blocks"], block)
    store.insert("field_title", {"pages_id": site.block_a, "data": "Block A"})
    store.insert("field_body", {"pages_id": site.block_a, "data": "<p>A</p>"})
    store.insert("field_title", {"pages_id": site.block_b, "data": "Block B", "data5": "Bloc B"})

    site.meta_item = store.add_item("meta", meta, parent_id=site.landing, status=0)
    store.insert("field_meta", {"pages_id": site.landing, "data": site.meta_item})
    store.insert("field_summary", {"pages_id": site.meta_item, "data": "Meta summary"})

    store.insert("field_related", {"pages_id": site.landing, "data": site.about, "sort": 0})
    return site
