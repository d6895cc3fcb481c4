"""
Column Resolver Service

Resolves logical fields (agent, created date, destination, ...) to the actual
header used by an uploaded dataset. Exports come from several report
templates, so the same field shows up as "GTT Owner", "Owner Name" or
"Lead Owner" depending on the source; every lookup therefore goes through an
ordered candidate list rather than a fixed header.

Matching rules:
- Candidates are tried in the caller's priority order
- For each candidate, a key equal to it (case-insensitive) wins, otherwise the
  first key containing it. Candidates in EXACT_ONLY_CANDIDATES skip the
  substring pass: a bare 'name' would otherwise match 'owner name'
- No match returns None; callers treat that as "field unavailable" and return
  an empty analysis instead of raising

Candidate lists live in COLUMN_CANDIDATES and are versioned by
COLUMN_CANDIDATES_VERSION. Bump the version whenever a list changes so cached
resolutions can be invalidated by callers.
"""

import re
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from performance_analytics.models.enums import LogicalField


# =============================================================================
# Candidate Lists
# =============================================================================

COLUMN_CANDIDATES_VERSION: int = 4

# Synthetic key written by grouped-report parsing when the agent name only
# appears in a group header row.
GROUPED_AGENT_KEY: str = '_agent'

# Too generic to match as a substring of another header
EXACT_ONLY_CANDIDATES: FrozenSet[str] = frozenset({'name'})

COLUMN_CANDIDATES: Dict[LogicalField, Tuple[str, ...]] = {
    LogicalField.AGENT: (
        GROUPED_AGENT_KEY,
        'gtt owner',
        'owner name',
        'last gtt action by',
        'agent name',
        'agent',
        'lead owner',
        'sales rep',
        'representative',
        'owner',
    ),
    LogicalField.LEAD_OWNER: (
        'lead owner',
        GROUPED_AGENT_KEY,
        'owner name',
        'agent',
    ),
    LogicalField.CREATED_DATE: (
        'created date',
        'trip: created date',
        'enquiry date',
        'date created',
        'created',
        'date',
    ),
    LogicalField.PASSTHROUGH_DATE: (
        'passthrough to sales date',
        'passthrough date',
    ),
    LogicalField.QUOTE_SENT_DATE: (
        'quote first sent',
        'quote sent date',
        'first sent',
        'sent date',
        'created date',
        'date',
    ),
    LogicalField.HOT_PASS_DATE: (
        'hot pass date',
        'passthrough to sales date',
        'passthrough date',
        'created date',
        'enquiry date',
        'trip created',
        'date',
    ),
    LogicalField.BOOKING_DATE: (
        'booking date',
        'booked date',
        'close date',
        'created date',
        'date',
    ),
    LogicalField.DESTINATION: (
        'destination',
        'region',
        'country',
        'program',
    ),
    LogicalField.REPEAT_NEW: (
        'repeat/new',
        'repeat',
        'client type',
        'customer type',
    ),
    LogicalField.B2B_B2C: (
        'b2b/b2c',
        'b2b',
        'business type',
        'client category',
        'lead channel',
    ),
    LogicalField.NON_VALIDATED_REASON: (
        'non validated reason',
        'non-validated reason',
        'status reason',
        'reason',
    ),
    LogicalField.TRIP_NAME: (
        'trip name',
        'trip:',
        'opportunity',
        'lead name',
        'name',
    ),
}


# =============================================================================
# Resolution
# =============================================================================


def find_column(row: Optional[Mapping[str, str]], candidates: Sequence[str]) -> Optional[str]:
    """
    Find the row key matching the first satisfiable candidate.

    Args:
        row: A sample row (header -> value). Only its keys are inspected.
        candidates: Candidate header names in priority order.

    Returns:
        The matching key exactly as it appears in the row, or None when no
        candidate matches.

    Example:
        >>> row = {'trip name': 'x', 'gtt owner name': 'Jane'}
        >>> find_column(row, ['owner name', 'agent'])
        'gtt owner name'
    """
    if not row:
        return None

    keys: List[str] = list(row.keys())
    lowered = [key.lower() for key in keys]

    for candidate in candidates:
        needle = candidate.lower()
        for key, low in zip(keys, lowered):
            if low == needle:
                return key
        if needle in EXACT_ONLY_CANDIDATES:
            continue
        for key, low in zip(keys, lowered):
            if needle in low:
                return key

    return None


def resolve_field(
    rows: Sequence[Mapping[str, str]],
    field: LogicalField,
) -> Optional[str]:
    """
    Resolve a logical field against the first row of a dataset.

    Returns None for an empty dataset.
    """
    if not rows:
        return None
    return find_column(rows[0], COLUMN_CANDIDATES[field])


def find_agent_column(row: Optional[Mapping[str, str]]) -> Optional[str]:
    """Resolve the agent column, preferring the grouped-report `_agent` key."""
    return find_column(row, COLUMN_CANDIDATES[LogicalField.AGENT])


# =============================================================================
# Value Helpers
# =============================================================================

_NUMERIC_PATTERN = re.compile(r'^[+-]?\d+(\.\d+)?$')


def is_numeric_value(value: Optional[str]) -> bool:
    """True if the value is a plain integer or decimal number."""
    if value is None:
        return False
    return bool(_NUMERIC_PATTERN.match(value.strip()))


def cell(row: Mapping[str, str], column: Optional[str]) -> str:
    """Stripped cell value, or '' when the column is unresolved or missing."""
    if column is None:
        return ''
    value = row.get(column)
    if value is None:
        return ''
    return str(value).strip()
