from journal_toolkit.analytics.report import AnalyticsReport, build_report, classify_topic

__all__ = ["AnalyticsReport", "build_report", "classify_topic"]
