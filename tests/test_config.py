"""Tests for settings parsing and the shared ``leave_ledger.common`` exports."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

import leave_ledger.common as common
from leave_ledger.common.constants import JanuaryExclusionScope
from leave_ledger.config import Settings


class TestSettings:

    def test_january_exclusion_default(self):
        assert Settings().JANUARY_EXCLUSION_SCOPE is JanuaryExclusionScope.single_employee

    def test_january_exclusion_from_env(self, monkeypatch):
        monkeypatch.setenv("JANUARY_EXCLUSION_SCOPE", "always")
        assert Settings().JANUARY_EXCLUSION_SCOPE is JanuaryExclusionScope.always

    def test_unknown_january_exclusion_rejected_at_load(self, monkeypatch):
        monkeypatch.setenv("JANUARY_EXCLUSION_SCOPE", "sometimes")
        with pytest.raises(ValidationError):
            Settings()

    def test_local_holidays_list(self, monkeypatch):
        monkeypatch.setenv("LOCAL_HOLIDAYS", '[{"month": 9, "day": 24, "name": "La Mercè"}]')
        assert Settings().local_holidays_list == [{"month": 9, "day": 24, "name": "La Mercè"}]

    def test_local_holidays_bad_json(self, monkeypatch):
        monkeypatch.setenv("LOCAL_HOLIDAYS", "not json")
        assert Settings().local_holidays_list == []


class TestCommonExports:

    def test_every_export_resolves(self):
        for name in common.__all__:
            assert hasattr(common, name), name

    def test_no_unused_date_format(self):
        assert "DATE_FORMAT" not in common.__all__
