"""Tests for settings: defaults, environment overrides and logging setup."""

from __future__ import annotations

import logging

import pytest

from pivothead.config.settings import Settings, configure_logging


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.default_page_size == 10
        assert s.max_page_size == 500
        assert s.default_row_height == 40
        assert s.min_row_height == 20
        assert s.max_sort_directives == 3
        assert s.empty_value_placeholder == "-"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PIVOTHEAD_DEFAULT_PAGE_SIZE", "25")
        monkeypatch.setenv("PIVOTHEAD_EMPTY_VALUE_PLACEHOLDER", "n/a")
        s = Settings(_env_file=None)
        assert s.default_page_size == 25
        assert s.empty_value_placeholder == "n/a"


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def _restore_level(self):
        logger = logging.getLogger("pivothead")
        level = logger.level
        yield
        logger.setLevel(level)

    def test_explicit_level(self):
        configure_logging("debug")
        assert logging.getLogger("pivothead").level == logging.DEBUG

    def test_default_level_from_settings(self):
        configure_logging()
        assert logging.getLogger("pivothead").level == logging.INFO

    def test_child_loggers_inherit(self):
        configure_logging("ERROR")
        assert logging.getLogger("pivothead.engine.grouping").getEffectiveLevel() == logging.ERROR
