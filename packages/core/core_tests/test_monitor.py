"""Tests for QueryMonitor."""

import logging

import pytest

from polyquery_core import MonitorConfig, QueryMonitor


class TestQueryMonitor:
    def test_stats(self):
        monitor = QueryMonitor()
        for ms in range(1, 21):
            monitor.record("select", float(ms))
        monitor.record("insert", 5.0, success=False)
        stats = monitor.get_stats()
        assert stats["total_queries"] == 21
        assert stats["failed_queries"] == 1
        assert stats["slow_queries"] == 0
        assert stats["p95_ms"] == 19.0
        assert stats["max_ms"] == 20.0
        assert stats["by_command"] == {"select": 20, "insert": 1}

    def test_slow_queries_are_logged(self, caplog):
        monitor = QueryMonitor(MonitorConfig(slow_query_threshold_ms=100))
        with caplog.at_level(logging.WARNING, logger="polyquery.monitor"):
            monitor.record("select", 250.0, query="SELECT * FROM big")
        assert monitor.get_stats()["slow_queries"] == 1
        assert "SELECT * FROM big" in caplog.text

    def test_track_records_failures(self):
        monitor = QueryMonitor()
        with pytest.raises(ValueError):
            with monitor.track("update"):
                raise ValueError("boom")
        with monitor.track("select"):
            pass
        stats = monitor.get_stats()
        assert stats["total_queries"] == 2
        assert stats["failed_queries"] == 1

    def test_disabled_monitor_records_nothing(self):
        monitor = QueryMonitor(MonitorConfig(enabled=False))
        monitor.record("select", 1.0)
        assert monitor.get_stats()["total_queries"] == 0

    def test_sample_window_and_reset(self):
        monitor = QueryMonitor(MonitorConfig(max_samples=2))
        for ms in (100.0, 1.0, 2.0):
            monitor.record("select", ms)
        assert monitor.get_stats()["max_ms"] == 2.0
        monitor.reset()
        assert monitor.get_stats()["total_queries"] == 0
        assert monitor.get_stats()["average_ms"] == 0.0
