"""IAM Log Report - Turn IAM batch logs into Excel reports."""

from .parser import LogReportParser, RecordSet, parse
from .report import Table, project
from .source import SourceUnreadableError

__all__ = ["LogReportParser", "RecordSet", "parse", "Table", "project", "SourceUnreadableError"]
