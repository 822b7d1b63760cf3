"""Aggregate statistics over a Spotify extended streaming history export."""

from listening_report.report import NoUsableRecordsError, Report, build_report

__all__ = ["NoUsableRecordsError", "Report", "build_report"]
