"""
Record Ingestion Service

Turns exported CRM reports (CSV text or a pandas DataFrame) into Raw Records:
lists of {lower-cased header: string value} rows.

Report Layouts:
- Flat: one header row followed by data rows
- Grouped: title/filter rows above the header, and data rows grouped under
  a one-cell "group header" naming the agent (e.g. "Smith, Jane")

Parsing Steps:
1. Locate the header row within the first 50 rows: at least 4 non-empty
   cells and one known header pattern; filter rows ("contains ...",
   "equals ...") are skipped. Falls back to the first row.
2. Lower-case and trim headers; blank headers become column_<index>
3. Drop blank rows, carry group headers forward into the owner column (or
   `_agent` when the report has none)
4. Drop summary rows (total, subtotal, grand total)

Spreadsheet binary formats are out of scope; convert them upstream.
"""

import csv
import io
import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from performance_analytics.models.enums import DatasetKind
from performance_analytics.models.schemas import RawDatasets, RawRecord
from performance_analytics.services.columns import GROUPED_AGENT_KEY

# Configure module logger
logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS - Header Detection
# =============================================================================

HEADER_SEARCH_ROWS: int = 50

HEADER_PATTERNS: List[str] = [
    'owner name',
    'last gtt action by',
    'trip name',
    'account name',
    'created date',
    'quote first sent',
    'passthrough',
]

# Report filter descriptions printed above the header
FILTER_MARKERS: List[str] = ['contains ', 'equals ']

MIN_HEADER_CELLS: int = 4

# Headers that identify the owner column of a grouped report
OWNER_HEADER_PATTERNS: List[str] = ['gtt owner', 'owner name', 'agent', 'last gtt action by']

# =============================================================================
# CONSTANTS - Grouped Reports
# =============================================================================

MAX_GROUP_HEADER_CELLS: int = 2
MIN_GROUP_HEADER_LENGTH: int = 3

SUMMARY_VALUES: List[str] = ['total', 'subtotal']

_LEADING_DIGIT = re.compile(r'^\d')


# =============================================================================
# GRID HELPERS
# =============================================================================

def _cells(row: Sequence[object]) -> List[str]:
    return ['' if value is None or pd.isna(value) else str(value).strip() for value in row]


def read_csv_grid(text: str) -> pd.DataFrame:
    """
    Read CSV text into a headerless grid of strings.

    Report exports are ragged (title rows have a single cell), so rows are
    split with the csv module and padded into a DataFrame.
    """
    rows = list(csv.reader(io.StringIO(text)))
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows).fillna('')


def is_header_row(cells: Sequence[str]) -> bool:
    joined = '|'.join(cells).lower()
    if any(marker in joined for marker in FILTER_MARKERS):
        return False
    if sum(1 for c in cells if c) < MIN_HEADER_CELLS:
        return False
    return any(pattern in joined for pattern in HEADER_PATTERNS)


def detect_header_row(grid: pd.DataFrame) -> int:
    """Index of the header row; 0 when none of the first rows qualifies."""
    for index in range(min(HEADER_SEARCH_ROWS, len(grid))):
        if is_header_row(_cells(grid.iloc[index].tolist())):
            return index
    logger.debug("No header pattern found; using the first row as header")
    return 0


def normalize_headers(values: Sequence[object]) -> List[str]:
    """Lower-case and trim headers; blanks become column_<index>."""
    return [cell.lower() or f"column_{i}" for i, cell in enumerate(_cells(values))]


def is_group_header(row: RawRecord, first_header: str) -> bool:
    """
    A grouped-report row naming the agent for the rows below it.

    >>> is_group_header({'owner name': 'Smith, Jane', 'trip name': ''}, 'owner name')
    True
    """
    first_value = row.get(first_header, '')
    non_empty = sum(1 for value in row.values() if value)
    return (
        non_empty <= MAX_GROUP_HEADER_CELLS
        and len(first_value) > MIN_GROUP_HEADER_LENGTH
        and (' ' in first_value or ',' in first_value)
        and not _LEADING_DIGIT.match(first_value)
        and 'total' not in first_value.lower()
    )


def is_summary_value(value: str) -> bool:
    lowered = value.strip().lower()
    return lowered in SUMMARY_VALUES or 'grand total' in lowered


def find_owner_header(headers: Sequence[str]) -> Optional[str]:
    for header in headers:
        if any(pattern in header for pattern in OWNER_HEADER_PATTERNS):
            return header
    return None


# =============================================================================
# PARSING
# =============================================================================

def parse_grid(grid: pd.DataFrame) -> List[RawRecord]:
    """
    Convert a headerless report grid into Raw Records.

    Args:
        grid: Report cells, one DataFrame row per spreadsheet row.

    Returns:
        Data rows keyed by normalized header, group and summary rows removed.
    """
    if grid.empty:
        return []

    header_index = detect_header_row(grid)
    headers = normalize_headers(grid.iloc[header_index].tolist())
    owner_header = find_owner_header(headers)

    records: List[RawRecord] = []
    current_agent = ''
    group_headers = summary_rows = 0

    for values in grid.iloc[header_index + 1:].itertuples(index=False):
        cells = _cells(values)
        if not any(cells):
            continue

        row: RawRecord = {
            header: cells[i] if i < len(cells) else ''
            for i, header in enumerate(headers)
        }

        if is_group_header(row, headers[0]):
            current_agent = row[headers[0]]
            group_headers += 1
            continue

        # Summary rows must not become the carried-forward agent
        if is_summary_value(row[owner_header or headers[0]]):
            summary_rows += 1
            continue

        if owner_header is not None:
            if row[owner_header]:
                current_agent = row[owner_header]
            else:
                row[owner_header] = current_agent
        elif current_agent:
            row[GROUPED_AGENT_KEY] = current_agent

        records.append(row)

    logger.info(
        f"Parsed {len(records)} rows (header at row {header_index}, "
        f"{group_headers} group headers, {summary_rows} summary rows dropped)"
    )
    return records


def parse_csv(text: Union[str, bytes]) -> List[RawRecord]:
    """
    Parse exported CSV text into Raw Records.

    A malformed or empty file yields [] rather than raising.
    """
    if isinstance(text, bytes):
        text = text.decode('utf-8-sig')
    try:
        grid = read_csv_grid(text)
    except csv.Error as e:
        logger.warning(f"Failed to parse CSV: {e}")
        return []
    return parse_grid(grid)


def records_from_dataframe(df: pd.DataFrame, has_header: bool = True) -> List[RawRecord]:
    """
    Convert a DataFrame into Raw Records.

    Args:
        df: Either a frame with named columns (has_header=True), or a raw
            headerless grid as read from a grouped report (has_header=False).
        has_header: Whether df's columns are already the report headers.
    """
    if not has_header:
        return parse_grid(df)
    if df.empty:
        return []

    grid = pd.concat(
        [pd.DataFrame([list(df.columns)]), pd.DataFrame(df.values.tolist())],
        ignore_index=True,
    )
    return parse_grid(grid)


def build_datasets(sources: Mapping[DatasetKind, Union[str, bytes, pd.DataFrame]]) -> RawDatasets:
    """
    Parse one source per dataset kind into a RawDatasets bundle.

    Missing kinds stay empty.
    """
    parsed: Dict[str, List[RawRecord]] = {}
    for kind, source in sources.items():
        if isinstance(source, pd.DataFrame):
            parsed[kind.value] = records_from_dataframe(source)
        else:
            parsed[kind.value] = parse_csv(source)
        logger.info(f"Loaded {len(parsed[kind.value])} {kind.value} records")
    return RawDatasets(**parsed)
