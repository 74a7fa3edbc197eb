"""
Yearly Plan Flow

Subsection and line item operations for the yearly worksheet, plus
the rollup summary.

DESIGN DECISION: Reorders and moves are validated completely before
anything is written, then persisted as one batch through the
storage's `apply_*_orders`. A rejected request leaves every row
exactly as it was.
"""

from typing import Optional
from uuid import UUID

from budgetbook.engine.ordering import renumber
from budgetbook.engine.yearly import compute_income_breakdown, compute_section_totals
from budgetbook.log_config import get_logger
from budgetbook.models.results import YearSummary
from budgetbook.models.yearly import (
    LineItemDraft,
    SectionKey,
    SubsectionWithItems,
    YearData,
    YearlyLineItem,
    YearlySubsection,
    apply_line_item_patch,
    parse_line_item,
)
from budgetbook.services.storage import (
    DuplicateError,
    NotFoundError,
    YearlyStorageInterface,
)
from budgetbook.validation import (
    ReorderRejectedError,
    check_destination_subsection,
    check_line_item_reorder,
    check_move,
    check_subsection_reorder,
)

logger = get_logger(__name__)


def _next_order(rows) -> int:
    return max((row.order for row in rows), default=-1) + 1


def _compacted(rows) -> dict[UUID, int]:
    """New orders for rows whose position no longer matches 0..n-1."""
    return {row.id: index for index, row in enumerate(rows) if row.order != index}


class YearlyPlanFlow:
    """Operations on one owner's yearly worksheets."""

    def __init__(self, storage: YearlyStorageInterface):
        self._storage = storage

    # =========================================================================
    # READS
    # =========================================================================

    async def list_for_year(self, owner_id: UUID, year: int) -> YearData:
        """Ordered subsections with their ordered items, plus section-level items."""
        subsections = await self._storage.list_subsections(owner_id, year)
        items = await self._storage.list_line_items(owner_id, year)

        grouped: dict[Optional[UUID], list[YearlyLineItem]] = {}
        for item in items:
            grouped.setdefault(item.container_id, []).append(item)

        return YearData(
            subsections=[
                SubsectionWithItems(subsection=sub, items=grouped.get(sub.id, []))
                for sub in subsections
            ],
            section_items=grouped.get(None, []),
        )

    async def list_years_with_data(self, owner_id: UUID) -> list[int]:
        return await self._storage.list_years(owner_id)

    async def year_summary(self, owner_id: UUID, year: int) -> YearSummary:
        items = await self._storage.list_line_items(owner_id, year)
        totals = compute_section_totals(items)
        return YearSummary(
            year=year,
            totals=totals,
            breakdown=compute_income_breakdown(totals),
        )

    # =========================================================================
    # SUBSECTIONS
    # =========================================================================

    async def _get_subsection(self, owner_id: UUID, subsection_id: UUID) -> YearlySubsection:
        sub = await self._storage.get_subsection(owner_id, subsection_id)
        if sub is None:
            raise NotFoundError("Subsection not found")
        return sub

    async def create_subsection(
        self,
        owner_id: UUID,
        year: int,
        section_key: SectionKey,
        title: str,
    ) -> YearlySubsection:
        """Append a subsection to a section. Income cannot have subsections."""
        siblings = await self._storage.list_subsections(owner_id, year, section_key)
        sub = YearlySubsection(
            owner_id=owner_id,
            year=year,
            section_key=section_key,
            title=title,
            order=_next_order(siblings),
        )
        [saved] = await self._storage.save_subsections([sub])
        logger.info(
            "subsection_created",
            subsection_id=str(saved.id),
            year=year,
            section_key=saved.section_key.value,
        )
        return saved

    async def rename_subsection(self, owner_id: UUID, subsection_id: UUID, title: str) -> YearlySubsection:
        sub = await self._get_subsection(owner_id, subsection_id)
        renamed = YearlySubsection.model_validate({**sub.model_dump(), "title": title})
        return await self._storage.update_subsection(renamed)

    async def remove_subsection(self, owner_id: UUID, subsection_id: UUID) -> int:
        """
        Delete a subsection and its items, closing the gap it leaves.

        Returns the number of items removed.
        """
        sub = await self._get_subsection(owner_id, subsection_id)
        removed = await self._storage.delete_subsection(owner_id, subsection_id)
        siblings = await self._storage.list_subsections(owner_id, sub.year, sub.section_key)
        orders = _compacted(siblings)
        if orders:
            await self._storage.apply_subsection_orders(owner_id, orders)
        logger.info("subsection_removed", subsection_id=str(subsection_id), items_removed=removed)
        return removed

    async def reorder_subsections(
        self,
        owner_id: UUID,
        year: int,
        section_key: SectionKey,
        ordered_ids: list[UUID],
    ) -> None:
        """
        Raises:
            ReorderRejectedError: If any id is not in (year, section) (nothing is written)
        """
        subsections = {sub.id: sub for sub in await self._storage.list_subsections(owner_id, year)}
        try:
            check_subsection_reorder(year, section_key, ordered_ids, subsections)
        except ReorderRejectedError as e:
            logger.warning("reorder_rejected", year=year, section_key=section_key.value, reason=str(e))
            raise
        await self._storage.apply_subsection_orders(owner_id, renumber(ordered_ids))
        logger.info("subsections_reordered", year=year, section_key=section_key.value, count=len(ordered_ids))

    # =========================================================================
    # LINE ITEMS
    # =========================================================================

    async def _get_line_item(self, owner_id: UUID, item_id: UUID) -> YearlyLineItem:
        item = await self._storage.get_line_item(owner_id, item_id)
        if item is None:
            raise NotFoundError("Line item not found")
        return item

    async def _check_container(
        self,
        owner_id: UUID,
        year: int,
        section_key: SectionKey,
        subsection_id: Optional[UUID],
    ) -> None:
        if subsection_id is None:
            return
        if section_key == SectionKey.INCOME:
            raise ValueError("Income items cannot have a subsection")
        sub = await self._get_subsection(owner_id, subsection_id)
        if sub.year != year or sub.section_key != section_key:
            raise ValueError("Subsection does not match year or section")

    async def create_line_item(
        self,
        owner_id: UUID,
        year: int,
        section_key: SectionKey,
        draft: LineItemDraft,
        subsection_id: Optional[UUID] = None,
    ) -> YearlyLineItem:
        """
        Append a line item to a section or one of its subsections.

        Raises:
            ValueError: If the container is invalid for this section
            pydantic.ValidationError: If the draft sets fields the section lacks
        """
        section_key = SectionKey(section_key)
        await self._check_container(owner_id, year, section_key, subsection_id)

        siblings = [
            item for item in await self._storage.list_line_items(owner_id, year, section_key)
            if item.container_id == subsection_id
        ]
        data = {
            "owner_id": owner_id,
            "year": year,
            "section_key": section_key.value,
            "order": _next_order(siblings),
            **draft.fields_set(),
        }
        if section_key != SectionKey.INCOME:
            data["subsection_id"] = subsection_id

        item = parse_line_item(data)
        [saved] = await self._storage.save_line_items([item])
        logger.info(
            "line_item_created",
            item_id=str(saved.id),
            year=year,
            section_key=section_key.value,
        )
        return saved

    async def update_line_item(self, owner_id: UUID, item_id: UUID, patch: LineItemDraft) -> YearlyLineItem:
        item = await self._get_line_item(owner_id, item_id)
        updated = await self._storage.update_line_item(apply_line_item_patch(item, patch))
        logger.info("line_item_updated", item_id=str(item_id), fields=sorted(patch.fields_set()))
        return updated

    async def remove_line_item(self, owner_id: UUID, item_id: UUID) -> None:
        """Delete an item and renumber the rest of its container."""
        item = await self._get_line_item(owner_id, item_id)
        if not await self._storage.delete_line_item(owner_id, item_id):
            raise NotFoundError("Line item not found")
        siblings = [
            row for row in await self._storage.list_line_items(owner_id, item.year, SectionKey(item.section_key))
            if row.container_id == item.container_id
        ]
        orders = _compacted(siblings)
        if orders:
            await self._storage.apply_line_item_orders(owner_id, orders)
        logger.info("line_item_removed", item_id=str(item_id))

    async def reorder_line_items(
        self,
        owner_id: UUID,
        year: int,
        section_key: SectionKey,
        subsection_id: Optional[UUID],
        ordered_ids: list[UUID],
    ) -> None:
        """
        Give one container's items the orders 0..n-1 in list order.

        Raises:
            ReorderRejectedError: If any id is foreign to the container (nothing is written)
        """
        section_key = SectionKey(section_key)
        items = {item.id: item for item in await self._storage.list_line_items(owner_id, year)}
        try:
            if subsection_id is not None:
                sub = await self._storage.get_subsection(owner_id, subsection_id)
                if sub is None or sub.year != year or sub.section_key != section_key:
                    raise ReorderRejectedError("Subsection does not match year or section")
            check_line_item_reorder(year, section_key, subsection_id, ordered_ids, items)
        except ReorderRejectedError as e:
            logger.warning("reorder_rejected", year=year, section_key=section_key.value, reason=str(e))
            raise
        await self._storage.apply_line_item_orders(owner_id, renumber(ordered_ids))
        logger.info("line_items_reordered", year=year, section_key=section_key.value, count=len(ordered_ids))

    async def move_line_item(
        self,
        owner_id: UUID,
        item_id: UUID,
        to_subsection_id: Optional[UUID],
        source_ordered_ids: list[UUID],
        dest_ordered_ids: list[UUID],
    ) -> None:
        """
        Move an item to another container of the same section.

        `source_ordered_ids` is the source container after the move and
        `dest_ordered_ids` the destination container including the item.
        Both are validated before the single batched write.

        Raises:
            NotFoundError: If the item is missing or not the owner's
            ReorderRejectedError: If the move does not fit (nothing is written)
        """
        item = await self._get_line_item(owner_id, item_id)
        destination = None
        if to_subsection_id is not None:
            destination = await self._storage.get_subsection(owner_id, to_subsection_id)
        items = {row.id: row for row in await self._storage.list_line_items(owner_id, item.year)}

        try:
            check_destination_subsection(item, destination, to_subsection_id)
            check_move(item, to_subsection_id, source_ordered_ids, dest_ordered_ids, items)
        except ReorderRejectedError as e:
            logger.warning("move_rejected", item_id=str(item_id), reason=str(e))
            raise

        orders = renumber(source_ordered_ids)
        orders.update(renumber(dest_ordered_ids))
        containers = {}
        if item.section_key != SectionKey.INCOME:
            containers[item.id] = to_subsection_id
        await self._storage.apply_line_item_orders(owner_id, orders, containers)
        logger.info(
            "line_item_moved",
            item_id=str(item_id),
            from_subsection_id=str(item.container_id) if item.container_id else None,
            to_subsection_id=str(to_subsection_id) if to_subsection_id else None,
        )

    # =========================================================================
    # COPY
    # =========================================================================

    async def copy_from_year(self, owner_id: UUID, source_year: int, target_year: int) -> YearData:
        """
        Copy a whole worksheet into an empty year.

        Subsections get new ids and every copied item is re-pointed at
        its subsection's new id.

        Raises:
            ValueError: If source and target are the same year
            NotFoundError: If the source year has no data
            DuplicateError: If the target year already has data
        """
        if source_year == target_year:
            raise ValueError("Source and target years must be different")

        source_subsections = await self._storage.list_subsections(owner_id, source_year)
        source_items = await self._storage.list_line_items(owner_id, source_year)
        if not source_subsections and not source_items:
            raise NotFoundError("Source year has no data to copy")

        if (
            await self._storage.list_subsections(owner_id, target_year)
            or await self._storage.list_line_items(owner_id, target_year)
        ):
            raise DuplicateError("Target year already has data")

        id_map: dict[UUID, UUID] = {}
        new_subsections = []
        for sub in source_subsections:
            copy = YearlySubsection(
                owner_id=owner_id,
                year=target_year,
                section_key=sub.section_key,
                title=sub.title,
                order=sub.order,
            )
            id_map[sub.id] = copy.id
            new_subsections.append(copy)

        new_items = []
        for item in source_items:
            data = item.model_dump(exclude={"id"})
            data["year"] = target_year
            if item.container_id is not None:
                data["subsection_id"] = id_map.get(item.container_id)
            new_items.append(type(item).model_validate(data))

        await self._storage.save_subsections(new_subsections)
        await self._storage.save_line_items(new_items)
        logger.info(
            "year_copied",
            source_year=source_year,
            target_year=target_year,
            subsections=len(new_subsections),
            items=len(new_items),
        )
        return await self.list_for_year(owner_id, target_year)
