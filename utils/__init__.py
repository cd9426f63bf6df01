"""Utils module - Configuration and record helpers.

This module contains:
- Central configuration (config.py)
- Tolerant multi-key field lookup and coercion (fields.py)
"""

from .fields import (
    FIELD_ALIASES,
    get_field,
    get_value,
    normalize_id,
    to_bool,
    to_number,
    to_period,
)
