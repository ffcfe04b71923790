"""
donations/models.py -- Domain dataclass for the donation ledger.

Pure data container with zero logic. Ownership rules and persistence live in
donations/store.py; access control lives in the API layer.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Donation:
    """An item a volunteer registered for the organisation.

    quantity and destination are free-form labels ("5kg", "2 boxes",
    "shelter") -- units vary by item, so nothing parses or sums them.

    received starts False and flips to True once the item reaches stock.
    owner_id is the id of the user who registered it and never changes.

    id is None before the record is written to the database.
    """

    description: str
    owner_id: int
    quantity: Optional[str] = None
    destination: Optional[str] = None
    received: bool = False
    id: Optional[int] = None
