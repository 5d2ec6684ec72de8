"""Reports package."""

from .backtest_report import BacktestReporter, format_summary

__all__ = ["BacktestReporter", "format_summary"]
