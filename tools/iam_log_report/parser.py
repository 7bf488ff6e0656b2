"""Core log parsing logic."""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Pattern, Tuple, Union

from shared.logger import get_logger

from .source import read_log_text

logger = get_logger(__name__)


class Basis(str, Enum):
    """Timestamp field that justified including a user."""

    LAST_CHANGE_DATE = "LETZTES_AENDERUNGSDATUM"
    CAPTURE_TIMESTAMP = "ERFASSUNGSZEITPUNKT"


class Section(str, Enum):
    """Log section that is active while scanning."""

    NONE = "none"
    IGNORED = "ignored"
    SINGLE_TENANT = "single_tenant"
    MULTI_TENANT = "multi_tenant"


class Collection(str, Enum):
    """Record collections produced by the parser, in report order."""

    INCLUDED_LAST_CHANGE = "included_last_change"
    INCLUDED_CAPTURE = "included_capture"
    IGNORED = "ignored"
    SINGLE_USER_TENANTS = "single_user_tenants"
    MULTI_USER_TENANTS = "multi_user_tenants"
    GROUP_ADDED = "group_added"


@dataclass(frozen=True)
class IncludedUser:
    """User included based on a timestamp field."""

    email: str
    salutation: str
    name: str
    timestamp: str
    basis: Basis


@dataclass(frozen=True)
class IgnoredUser:
    """User ignored while processing a tenant organization."""

    email: str
    salutation: str
    name: str
    last_change_date: Optional[str]
    capture_timestamp: Optional[str]
    organization: Optional[str] = None


@dataclass(frozen=True)
class TenantUser:
    """User listed under a tenant's business partner."""

    email: str
    salutation: str
    name: str
    business_partner: Optional[str] = None


@dataclass(frozen=True)
class GroupAddedUser:
    """User added to the Hauptverantwortlicher group."""

    email: str
    distinguished_name: str


Record = Union[IncludedUser, IgnoredUser, TenantUser, GroupAddedUser]


@dataclass
class RecordSet:
    """The six record collections extracted from one log."""

    included_last_change: List[IncludedUser] = field(default_factory=list)
    included_capture: List[IncludedUser] = field(default_factory=list)
    ignored: List[IgnoredUser] = field(default_factory=list)
    single_user_tenants: List[TenantUser] = field(default_factory=list)
    multi_user_tenants: List[TenantUser] = field(default_factory=list)
    group_added: List[GroupAddedUser] = field(default_factory=list)

    def get(self, collection: Collection) -> List[Record]:
        return getattr(self, collection.value)

    def add(self, collection: Collection, record: Record) -> None:
        self.get(collection).append(record)

    def counts(self) -> Dict[Collection, int]:
        """Number of records per collection, in report order."""
        return {collection: len(self.get(collection)) for collection in Collection}

    @property
    def total(self) -> int:
        return sum(self.counts().values())


# Section banners, checked as substrings of the raw line
SECTION_MARKERS: Tuple[Tuple[str, Section], ...] = (
    ("========= Included Users Based on LETZTES_AENDERUNGSDATUM =========", Section.NONE),
    ("========= Included Users Based on ERFASSUNGSZEITPUNKT =========", Section.NONE),
    ("========= Ignorierte Nutzer von Mandanten =========", Section.IGNORED),
    ("========= Mandanten mit einem Benutzer =========", Section.SINGLE_TENANT),
    ("========= Mandanten mit mehreren Benutzern =========", Section.MULTI_TENANT),
    ("========= Users Added to Hauptverantwortlicher Group =========", Section.NONE),
)

ORGANIZATION_PREFIX = "Organization:"
BUSINESS_PARTNER_PREFIX = "Geschäftspartner:"
USER_PREFIX = "Benutzer:"
IGNORED_USER_MARKER = "Ignorierter Nutzer:"

SALUTATION = r"(?P<salutation>Frau|Herrn?)"


def _included_pattern(basis: Basis) -> Pattern:
    # User EMAIL | Frau/Herrn Nachname, Vorname included based on LABEL: DATETIME
    return re.compile(
        r"User\s+(?P<email>\S+)\s*\|\s*" + SALUTATION + r"\s+(?P<name>\S.*?)\s*"
        r"included based on " + basis.value + r":\s*(?P<timestamp>\S.*)"
    )


INCLUDED_PATTERNS: Dict[Basis, Pattern] = {basis: _included_pattern(basis) for basis in Basis}

INCLUDED_COLLECTIONS: Dict[Basis, Collection] = {
    Basis.LAST_CHANGE_DATE: Collection.INCLUDED_LAST_CHANGE,
    Basis.CAPTURE_TIMESTAMP: Collection.INCLUDED_CAPTURE,
}

# Ignorierter Nutzer: EMAIL | Frau Name | LETZTES_AENDERUNGSDATUM: XX, ERFASSUNGSZEITPUNKT: YY
IGNORED_USER_PATTERN = re.compile(
    r"Ignorierter Nutzer:\s+(?P<email>\S+)\s*\|\s*" + SALUTATION + r"\s+(?P<name>[^|\s][^|]*)\|.*?"
    r"LETZTES_AENDERUNGSDATUM:\s*(?P<last_change_date>[^,]+)?,\s*"
    r"ERFASSUNGSZEITPUNKT:\s*(?P<capture_timestamp>.*)"
)

# Benutzer: EMAIL | Frau Name
TENANT_USER_PATTERN = re.compile(
    r"Benutzer:\s+(?P<email>\S+)\s*\|\s*" + SALUTATION + r"\s+(?P<name>\S.*)"
)

# Benutzer: EMAIL | DN: uid=...,ou=Benutzer,...
GROUP_USER_PATTERN = re.compile(r"Benutzer:\s+(?P<email>\S+)\s*\|\s+DN:\s+(?P<dn>.*)")

LINE_BREAK = re.compile(r"\r?\n")


@dataclass
class ScanState:
    """Mutable scan context, private to a single parse call."""

    section: Section = Section.NONE
    organization: Optional[str] = None
    business_partner: Optional[str] = None

    def enter(self, section: Section) -> None:
        self.section = section
        self.organization = None
        self.business_partner = None


@dataclass(frozen=True)
class LineMatch:
    """A classifier claimed the line, optionally producing a record."""

    collection: Optional[Collection] = None
    record: Optional[Record] = None
    rejected: bool = False


CLAIMED = LineMatch()
# Claimed, but the line did not have the expected shape
REJECTED = LineMatch(rejected=True)

Classifier = Callable[[str, str, ScanState], Optional[LineMatch]]


def _clean(value: Optional[str]) -> Optional[str]:
    """Strip a captured value; empty captures become None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _remainder(trimmed: str, prefix: str) -> Optional[str]:
    return _clean(trimmed[len(prefix):])


def classify_section_marker(line: str, trimmed: str, state: ScanState) -> Optional[LineMatch]:
    """Switch the active section when the line carries a section banner."""
    for marker, section in SECTION_MARKERS:
        if marker in line:
            state.enter(section)
            return CLAIMED
    return None


def classify_included_user(line: str, trimmed: str, state: ScanState) -> Optional[LineMatch]:
    """Extract users included based on a timestamp field, in any section."""
    for basis, pattern in INCLUDED_PATTERNS.items():
        if f" included based on {basis.value}:" not in line:
            continue

        match = pattern.search(line)
        if not match:
            return REJECTED

        record = IncludedUser(
            email=match.group("email").strip(),
            salutation=match.group("salutation"),
            name=match.group("name").strip(),
            timestamp=match.group("timestamp").strip(),
            basis=basis,
        )
        return LineMatch(INCLUDED_COLLECTIONS[basis], record)

    return None


def classify_ignored_section(line: str, trimmed: str, state: ScanState) -> Optional[LineMatch]:
    """Track organizations and extract ignored users; claims every line of the section."""
    if state.section != Section.IGNORED:
        return None

    if trimmed.startswith(ORGANIZATION_PREFIX):
        state.organization = _remainder(trimmed, ORGANIZATION_PREFIX)
        return CLAIMED

    if IGNORED_USER_MARKER not in line:
        return CLAIMED

    match = IGNORED_USER_PATTERN.search(line)
    if not match:
        return REJECTED

    record = IgnoredUser(
        email=match.group("email").strip(),
        salutation=match.group("salutation"),
        name=match.group("name").strip(),
        last_change_date=_clean(match.group("last_change_date")),
        capture_timestamp=_clean(match.group("capture_timestamp")),
        organization=state.organization,
    )
    return LineMatch(Collection.IGNORED, record)


def classify_tenant_section(line: str, trimmed: str, state: ScanState) -> Optional[LineMatch]:
    """Track business partners and extract tenant users; claims every line of the section."""
    if state.section == Section.SINGLE_TENANT:
        collection = Collection.SINGLE_USER_TENANTS
    elif state.section == Section.MULTI_TENANT:
        collection = Collection.MULTI_USER_TENANTS
    else:
        return None

    if trimmed.startswith(BUSINESS_PARTNER_PREFIX):
        state.business_partner = _remainder(trimmed, BUSINESS_PARTNER_PREFIX)
        return CLAIMED

    if not trimmed.startswith(USER_PREFIX):
        return CLAIMED

    match = TENANT_USER_PATTERN.search(trimmed)
    if not match:
        return REJECTED

    record = TenantUser(
        email=match.group("email").strip(),
        salutation=match.group("salutation"),
        name=match.group("name").strip(),
        business_partner=state.business_partner,
    )
    return LineMatch(collection, record)


def classify_group_user(line: str, trimmed: str, state: ScanState) -> Optional[LineMatch]:
    """Extract users added to the group, outside any claiming section."""
    if not (trimmed.startswith(USER_PREFIX) and " DN: " in trimmed):
        return None

    match = GROUP_USER_PATTERN.search(trimmed)
    if not match:
        return REJECTED

    record = GroupAddedUser(
        email=match.group("email").strip(),
        distinguished_name=match.group("dn").strip(),
    )
    return LineMatch(Collection.GROUP_ADDED, record)


# Order matters: the first classifier that claims a line wins
CLASSIFIERS: Tuple[Classifier, ...] = (
    classify_section_marker,
    classify_included_user,
    classify_ignored_section,
    classify_tenant_section,
    classify_group_user,
)


class LogReportParser:
    """
    Parse IAM batch logs into typed record collections.

    The parser keeps no scan state between calls, so one instance can be
    shared and reused freely.
    """

    def __init__(self, classifiers: Tuple[Classifier, ...] = CLASSIFIERS):
        """
        Initialize log parser.

        Args:
            classifiers: Ordered line classifiers (first claim wins)
        """
        self.classifiers = classifiers
        logger.debug(f"Initialized LogReportParser with {len(classifiers)} classifiers")

    def parse(self, text: str) -> RecordSet:
        """
        Parse log text.

        Args:
            text: Full log contents

        Returns:
            RecordSet with all extracted records
        """
        records = RecordSet()
        state = ScanState()

        for line_number, line in enumerate(LINE_BREAK.split(text), 1):
            match = self.classify_line(line, state)

            if match is not None and match.rejected:
                logger.debug(f"Skipped malformed line {line_number}: {line.strip()[:80]}")
                continue

            if match is None or match.record is None:
                continue

            records.add(match.collection, match.record)

        logger.info(f"Extracted {records.total} records")
        return records

    def classify_line(self, line: str, state: ScanState) -> Optional[LineMatch]:
        """
        Run a line through the classifier chain.

        Args:
            line: Raw log line
            state: Scan context, updated in place by header and marker lines

        Returns:
            LineMatch from the first classifier that claimed the line, or None
        """
        trimmed = line.strip()

        for classifier in self.classifiers:
            match = classifier(line, trimmed, state)
            if match is not None:
                return match

        return None

    def parse_file(self, filepath: Path, encoding: str = "utf-8") -> RecordSet:
        """
        Read and parse a log file.

        Args:
            filepath: Path to log file
            encoding: File encoding

        Returns:
            RecordSet with all extracted records

        Raises:
            SourceUnreadableError: If the file cannot be read or decoded
        """
        logger.info(f"Parsing log file: {filepath}")
        return self.parse(read_log_text(filepath, encoding=encoding))


def parse(text: str) -> RecordSet:
    """Parse log text with the default classifier chain."""
    return LogReportParser().parse(text)
