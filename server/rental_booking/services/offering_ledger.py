"""Offering selection ledger: which add-ons a draft carries, how many, and which are free."""

import logging
from typing import Iterable, Optional

from ..schemas.booking import OfferingSelection
from ..schemas.catalog import Offering

logger = logging.getLogger(__name__)


def sanitize_quantity(offering: Offering, quantity: int) -> int:
    """Clamp a requested quantity to at least 1 and to the offering's per-booking cap."""
    safe = max(1, quantity)
    cap = offering.max_quantity_per_booking
    if cap:
        safe = min(safe, cap)
    return safe


class OfferingLedger:
    """
    Selected offerings of one booking draft, keyed by offering id.

    Holds the known catalog so offerings can be toggled by id, plus the
    current mandatory set and package-included set. Mandatory offerings can
    never be deselected. A package-included entry gets one free unit; the
    flag follows the package while the user's quantity is kept.
    """

    def __init__(
        self,
        catalog: Optional[Iterable[Offering]] = None,
        selections: Optional[Iterable[OfferingSelection]] = None,
    ):
        self.catalog: dict[int, Offering] = {}
        self.entries: dict[int, OfferingSelection] = {}
        self.mandatory_ids: frozenset[int] = frozenset()
        self.package_included_ids: frozenset[int] = frozenset()

        self.register(catalog or ())
        for selection in selections or ():
            self.register([selection.offering])
            self.entries[selection.offering.id] = selection.model_copy()

    def register(self, offerings: Iterable[Offering]) -> None:
        """Add offerings to the known catalog, replacing stale copies."""
        for offering in offerings:
            self.catalog[offering.id] = offering

    def knows(self, offering_id: int) -> bool:
        return offering_id in self.catalog or offering_id in self.entries

    def get(self, offering_id: int) -> Optional[OfferingSelection]:
        return self.entries.get(offering_id)

    def selections(self) -> list[OfferingSelection]:
        """Entries in insertion order."""
        return list(self.entries.values())

    def snapshot(self) -> dict[int, tuple[int, bool]]:
        """Comparable view of the ledger: id -> (quantity, included)."""
        return {
            offering_id: (entry.quantity, entry.included)
            for offering_id, entry in self.entries.items()
        }

    def billable_quantity(self, offering_id: int) -> int:
        entry = self.entries.get(offering_id)
        return entry.billable_quantity if entry else 0

    def toggle(self, offering_id: int, selected: bool) -> bool:
        """
        Select or deselect an offering.

        Deselecting a mandatory offering is a no-op. Selecting keeps any
        quantity already chosen.

        Returns:
            True if the ledger changed

        Raises:
            KeyError: If selecting an offering that is not in the catalog
        """
        if not selected:
            if offering_id in self.mandatory_ids:
                logger.debug(
                    "Ignoring deselect of mandatory offering",
                    extra={"offering_id": offering_id}
                )
                return False
            return self.entries.pop(offering_id, None) is not None

        existing = self.entries.get(offering_id)
        offering = existing.offering if existing else self.catalog[offering_id]
        quantity = max(existing.quantity if existing else 0, 1)
        included = offering_id in self.package_included_ids

        if existing and existing.quantity == quantity and existing.included == included:
            return False

        self.entries[offering_id] = OfferingSelection(
            offering=offering,
            quantity=quantity,
            included=included,
        )
        return True

    def set_quantity(self, offering_id: int, quantity: int) -> bool:
        """
        Change the quantity of an existing entry.

        No-op when the offering is not selected or when the clamped quantity
        equals the current one.
        """
        existing = self.entries.get(offering_id)
        if existing is None:
            return False

        safe = sanitize_quantity(existing.offering, quantity)
        if safe == existing.quantity:
            return False

        self.entries[offering_id] = existing.model_copy(update={"quantity": safe})
        return True

    def reconcile(
        self,
        mandatory: Iterable[Offering],
        package_included: Iterable[Offering],
    ) -> None:
        """
        Bring entries in line with the mandatory and package-included sets.

        Mandatory offerings are added (quantity 1, charged). Package-included
        offerings are added or flagged with one free unit, never lowering a
        quantity. Entries the package no longer covers lose their free unit but
        keep their quantity.
        """
        mandatory = list(mandatory)
        package_included = list(package_included)
        self.register(mandatory)
        self.register(package_included)

        self.mandatory_ids = frozenset(offering.id for offering in mandatory)
        self.package_included_ids = frozenset(offering.id for offering in package_included)

        for offering in mandatory:
            if offering.id not in self.entries:
                self.entries[offering.id] = OfferingSelection(
                    offering=offering, quantity=1, included=False
                )

        for offering in package_included:
            existing = self.entries.get(offering.id)
            if existing is None:
                self.entries[offering.id] = OfferingSelection(
                    offering=offering, quantity=1, included=True
                )
            elif not existing.included or existing.quantity < 1:
                self.entries[offering.id] = existing.model_copy(
                    update={"included": True, "quantity": max(existing.quantity, 1)}
                )

        for offering_id, entry in list(self.entries.items()):
            if entry.included and offering_id not in self.package_included_ids:
                self.entries[offering_id] = entry.model_copy(update={"included": False})

        logger.debug(
            "Offering ledger reconciled",
            extra={
                "mandatory_ids": sorted(self.mandatory_ids),
                "package_included_ids": sorted(self.package_included_ids),
                "entries": len(self.entries),
            }
        )
