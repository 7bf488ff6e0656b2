"""Projection of parsed records into named report tables."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .parser import (
    Collection,
    GroupAddedUser,
    IgnoredUser,
    IncludedUser,
    Record,
    RecordSet,
    TenantUser,
)

Cell = Optional[str]
Row = Tuple[Cell, ...]


@dataclass(frozen=True)
class Table:
    """A named table: one header row followed by data rows."""

    name: str
    headers: Tuple[str, ...]
    rows: Tuple[Row, ...]

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def filter_bounds(self) -> Optional[Tuple[Tuple[int, int], Tuple[int, int]]]:
        """
        Zero-based (row, column) corners of the header filter.

        Spans the header row and all data rows; None for a header-only table.
        """
        if not self.rows:
            return None
        return (0, 0), (len(self.rows), len(self.headers) - 1)


@dataclass(frozen=True)
class SheetSpec:
    """How one record collection is turned into a table."""

    name: str
    collection: Collection
    headers: Tuple[str, ...]
    to_row: Callable[[Record], Row]


def _included_row(user: IncludedUser) -> Row:
    return (user.email, user.salutation, user.name, user.timestamp)


def _ignored_row(user: IgnoredUser) -> Row:
    return (
        user.organization,
        user.email,
        user.salutation,
        user.name,
        user.last_change_date,
        user.capture_timestamp,
    )


def _tenant_row(user: TenantUser) -> Row:
    return (user.business_partner, user.email, user.salutation, user.name)


def _group_row(user: GroupAddedUser) -> Row:
    return (user.email, user.distinguished_name)


INCLUDED_HEADERS = ("Email", "Salutation", "Name", "Timestamp")
TENANT_HEADERS = ("BusinessPartner", "Email", "Salutation", "Name")

# Sheet order is part of the report contract
SHEETS: Tuple[SheetSpec, ...] = (
    SheetSpec(
        "Included (by last-change-date)",
        Collection.INCLUDED_LAST_CHANGE,
        INCLUDED_HEADERS,
        _included_row,
    ),
    SheetSpec(
        "Included (by capture-timestamp)",
        Collection.INCLUDED_CAPTURE,
        INCLUDED_HEADERS,
        _included_row,
    ),
    SheetSpec(
        "Ignored users",
        Collection.IGNORED,
        ("Organization", "Email", "Salutation", "Name", "LastChangeDate", "CaptureTimestamp"),
        _ignored_row,
    ),
    SheetSpec("Single-user tenants", Collection.SINGLE_USER_TENANTS, TENANT_HEADERS, _tenant_row),
    SheetSpec("Multi-user tenants", Collection.MULTI_USER_TENANTS, TENANT_HEADERS, _tenant_row),
    SheetSpec(
        "Group-added users",
        Collection.GROUP_ADDED,
        ("Email", "DistinguishedName"),
        _group_row,
    ),
)


def project_collection(spec: SheetSpec, records: Sequence[Record]) -> Table:
    rows = tuple(spec.to_row(record) for record in records)
    return Table(name=spec.name, headers=spec.headers, rows=rows)


def project(records: RecordSet) -> Dict[str, Table]:
    """
    Map every record collection to its report table.

    Args:
        records: Parsed record collections

    Returns:
        Ordered mapping of sheet name to table; always six entries
    """
    return {spec.name: project_collection(spec, records.get(spec.collection)) for spec in SHEETS}


def tables_to_dict(tables: Dict[str, Table]) -> Dict[str, Dict[str, Any]]:
    """Convert tables to a JSON-serializable mapping."""
    data: Dict[str, Dict[str, Any]] = {}
    for name, table in tables.items():
        rows: List[Dict[str, Cell]] = [dict(zip(table.headers, row)) for row in table.rows]
        data[name] = {"headers": list(table.headers), "rows": rows}
    return data
