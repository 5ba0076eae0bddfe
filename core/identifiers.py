"""Record identifiers and human-readable document numbers."""

import random
import uuid
from datetime import date

PURCHASE_ORDER_PREFIX = "PO"
OFFER_PREFIX = "OF"
WORK_ORDER_PREFIX = "WO"


def new_id() -> str:
    return str(uuid.uuid4())


def document_number(prefix: str, day: date) -> str:
    """Return ``PREFIX-YYYYMMDD-NNN``.

    The suffix is random and not checked for uniqueness; collisions are
    accepted at the expected volume.
    """
    return f"{prefix}-{day:%Y%m%d}-{random.randint(0, 999):03d}"
