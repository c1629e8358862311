"""Category registry with delete-and-reassign semantics."""

from __future__ import annotations

import logging
import re

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, sessionmaker

from ..db.models import CatalogEntryRow, CategoryRow
from ..errors import CategoryError
from .models import UNCATEGORIZED, Category

__all__ = ["CategoryRegistry", "SENTINEL_LABEL", "slugify"]

logger = logging.getLogger(__name__)

SENTINEL_LABEL = "Uncategorized"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(label: str) -> str:
    """Return the category identifier derived from *label*.

    >>> slugify("  Desk Toys & Gadgets! ")
    'desk-toys-gadgets'
    """

    return _NON_ALNUM.sub("-", str(label).lower()).strip("-")


class CategoryRegistry:
    """CRUD over the categories of one catalog kind."""

    def __init__(self, kind: str, session_factory: sessionmaker[Session]) -> None:
        self._kind = kind
        self._session_factory = session_factory

    @property
    def kind(self) -> str:
        return self._kind

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list_categories(self) -> list[Category]:
        """Return every category with its usage count, sentinel included."""

        self.ensure_sentinel()
        with self._session_factory() as session:
            rows = session.scalars(
                select(CategoryRow)
                .where(CategoryRow.kind == self._kind)
                .order_by(CategoryRow.sort_order, CategoryRow.id)
            ).all()
            counts = dict(
                session.execute(
                    select(CatalogEntryRow.category_id, func.count(CatalogEntryRow.id))
                    .where(CatalogEntryRow.kind == self._kind)
                    .group_by(CatalogEntryRow.category_id)
                ).all()
            )
        return [self._row_to_record(row, counts.get(row.slug, 0)) for row in rows]

    def get(self, slug: str) -> Category | None:
        with self._session_factory() as session:
            row = self._fetch_row(session, slug)
            if row is None:
                return None
            return self._row_to_record(row, self._usage(session, slug))

    def exists(self, slug: str) -> bool:
        if slug == UNCATEGORIZED:
            return True
        with self._session_factory() as session:
            return self._fetch_row(session, slug) is not None

    def usage(self, slug: str) -> int:
        """Return how many entries currently reference *slug*."""

        with self._session_factory() as session:
            return self._usage(session, slug)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def ensure_sentinel(self) -> Category:
        """Create the ``uncategorized`` category when it is missing."""

        with self._session_factory() as session, session.begin():
            row = self._fetch_row(session, UNCATEGORIZED)
            if row is None:
                row = CategoryRow(
                    kind=self._kind,
                    slug=UNCATEGORIZED,
                    label=SENTINEL_LABEL,
                    sort_order=0,
                    is_active=True,
                )
                session.add(row)
                session.flush()
                logger.info("Created sentinel category for %s", self._kind)
            return self._row_to_record(row, 0)

    def create(self, label: str) -> Category:
        """Create a category from *label*.

        An existing slug is not an error: the existing category is returned
        so the caller can simply select it.
        """

        cleaned = str(label or "").strip()
        slug = slugify(cleaned)
        if not cleaned or not slug:
            raise CategoryError("Category label must contain letters or digits.")

        self.ensure_sentinel()
        with self._session_factory() as session, session.begin():
            existing = self._fetch_row(session, slug)
            if existing is not None:
                logger.debug("Category %s/%s already exists; selecting it", self._kind, slug)
                return self._row_to_record(existing, self._usage(session, slug))

            last_order = session.scalar(
                select(func.max(CategoryRow.sort_order)).where(CategoryRow.kind == self._kind)
            )
            row = CategoryRow(
                kind=self._kind,
                slug=slug,
                label=cleaned,
                sort_order=(last_order or 0) + 1,
                is_active=True,
            )
            session.add(row)
            session.flush()
            logger.info("Created category %s/%s", self._kind, slug)
            return self._row_to_record(row, 0)

    def delete(self, slug: str, reassign_to: str | None = UNCATEGORIZED) -> int:
        """Delete *slug* after moving its entries to *reassign_to*.

        Both steps share one transaction, so no entry can be left pointing
        at a deleted category.  Returns the number of reassigned entries.
        """

        target = (reassign_to or UNCATEGORIZED).strip() or UNCATEGORIZED
        slug = str(slug or "").strip()
        if not slug:
            raise CategoryError("A category id is required.")
        if slug == UNCATEGORIZED:
            raise CategoryError("The uncategorized category cannot be deleted.")
        if target == slug:
            raise CategoryError("Reassign target must differ from the category being deleted.")

        self.ensure_sentinel()
        with self._session_factory() as session, session.begin():
            row = self._fetch_row(session, slug)
            if row is None:
                raise CategoryError(f"Category {slug!r} does not exist.")
            if self._fetch_row(session, target) is None:
                raise CategoryError(f"Reassign target {target!r} does not exist.")

            result = session.execute(
                update(CatalogEntryRow)
                .where(
                    CatalogEntryRow.kind == self._kind,
                    CatalogEntryRow.category_id == slug,
                )
                .values(category_id=target)
            )
            session.delete(row)
            reassigned = int(result.rowcount or 0)

        logger.info(
            "Deleted category %s/%s; reassigned %d entr%s to %s",
            self._kind,
            slug,
            reassigned,
            "y" if reassigned == 1 else "ies",
            target,
        )
        return reassigned

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _fetch_row(self, session: Session, slug: str) -> CategoryRow | None:
        return session.scalar(
            select(CategoryRow).where(CategoryRow.kind == self._kind, CategoryRow.slug == slug)
        )

    def _usage(self, session: Session, slug: str) -> int:
        count = session.scalar(
            select(func.count(CatalogEntryRow.id)).where(
                CatalogEntryRow.kind == self._kind,
                CatalogEntryRow.category_id == slug,
            )
        )
        return int(count or 0)

    def _row_to_record(self, row: CategoryRow, usage: int) -> Category:
        return Category(
            id=row.slug,
            kind=row.kind,
            label=row.label,
            sort_order=row.sort_order,
            active=row.is_active,
            usage_count=usage,
        )
