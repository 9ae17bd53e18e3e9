# Overview: Selling locations as a tagged variant: a store or the distribution center.

"""
Every stock row, invoice counter and sale belongs to exactly one location.

A location is either StoreLocation(store_id) or the single DistributionCenter.
Both expose the same attributes so the inventory ledger and the invoice
numbering service never branch on a nullable store id:

- key: stable string used in unique constraints ("STORE:12", "DC")
- store_id: the store FK, or None for the DC
- location_type / counter_type: "STORE" or "DC"
- transaction_type: "STORE_SALE" or "DC_SALE"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..errors import ValidationError

MAX_STORE_ID = 2 ** 63 - 1

DC_KEY = "DC"
DC_LABEL = "Distribution Center"

STORE_SALE = "STORE_SALE"
DC_SALE = "DC_SALE"
TRANSACTION_TYPES = (STORE_SALE, DC_SALE)


@dataclass(frozen=True)
class StoreLocation:
    store_id: int

    location_type = "STORE"
    transaction_type = STORE_SALE

    @property
    def key(self) -> str:
        return f"STORE:{self.store_id}"

    @property
    def counter_type(self) -> str:
        return self.location_type

    def default_invoice_prefix(self) -> str:
        return f"STR{self.store_id:03d}"


@dataclass(frozen=True)
class DistributionCenter:
    location_type = "DC"
    transaction_type = DC_SALE

    @property
    def store_id(self) -> None:
        return None

    @property
    def key(self) -> str:
        return DC_KEY

    @property
    def counter_type(self) -> str:
        return self.location_type

    def default_invoice_prefix(self) -> str:
        return "DC"


Location = Union[StoreLocation, DistributionCenter]

DISTRIBUTION_CENTER = DistributionCenter()


def location_for(store_id: int | None) -> Location:
    """Map a nullable store id onto a location (None means the DC)."""
    if store_id is None:
        return DISTRIBUTION_CENTER
    return StoreLocation(int(store_id))


def location_for_sale(store_id: int | None, transaction_type: str | None = None) -> Location:
    """
    Resolve the selling location for a checkout request.

    DC_SALE always sells from the distribution center; otherwise a store id
    is required.
    """
    if transaction_type is not None and transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(
            f"transaction_type must be one of {', '.join(TRANSACTION_TYPES)}",
            details={"transaction_type": transaction_type},
        )
    if transaction_type == DC_SALE:
        return DISTRIBUTION_CENTER
    if store_id is None:
        raise ValidationError("store_id required for store sales")
    try:
        store_id = int(store_id)
    except (TypeError, ValueError):
        raise ValidationError("store_id must be an integer", details={"store_id": store_id})
    if not 0 < store_id <= MAX_STORE_ID:
        raise ValidationError("store_id is out of range", details={"store_id": str(store_id)})
    return StoreLocation(store_id)
