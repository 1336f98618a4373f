"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

DEFAULT_LIST_LIMIT = 200
DEFAULT_AUDIT_LIMIT = 200
MAX_AUDIT_LIMIT = 1000
MIN_PASSWORD_LENGTH = 6
DEFAULT_DESIGNATION = "standard"

MONEY_QUANTUM = Decimal("0.01")
HOURS_QUANTUM = Decimal("0.01")

# Decimal places of the stored columns (see database/schema.sql).
MONEY_PLACES = 2
DISTANCE_PLACES = 2
RATE_PLACES = 4
