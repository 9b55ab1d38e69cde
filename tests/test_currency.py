"""Tests for the currency coefficient service."""
from decimal import Decimal

import pytest

from storefront.currency import COEFFICIENT_KEY, CurrencyService
from storefront.errors import InvalidPrice


class TestCurrencyService:

    def test_missing_file_uses_default(self, tmp_path):
        service = CurrencyService(tmp_path / "exchange.ini", "1.00")
        assert service.coefficient == Decimal("1.00")

    def test_reads_configured_value(self, tmp_path):
        path = tmp_path / "exchange.ini"
        path.write_text(f"{COEFFICIENT_KEY}=1.08\n")

        assert CurrencyService(path).coefficient == Decimal("1.08")

    def test_file_without_key_uses_default(self, tmp_path):
        path = tmp_path / "exchange.ini"
        path.write_text("OTHER=1\n")

        assert CurrencyService(path, "1.10").coefficient == Decimal("1.10")

    def test_update_persists(self, tmp_path):
        path = tmp_path / "exchange.ini"
        service = CurrencyService(path)

        assert service.update("1,15") == Decimal("1.15")
        assert service.coefficient == Decimal("1.15")
        assert f"{COEFFICIENT_KEY}=1.15" in path.read_text()
        # A fresh process picks up the stored value
        assert CurrencyService(path).coefficient == Decimal("1.15")

    def test_update_keeps_other_settings(self, tmp_path):
        path = tmp_path / "exchange.ini"
        path.write_text(f"OTHER=abc\n{COEFFICIENT_KEY}=1.00\n")

        CurrencyService(path).update("1.20")

        content = path.read_text()
        assert "OTHER=abc" in content
        assert f"{COEFFICIENT_KEY}=1.20" in content

    @pytest.mark.parametrize("value", ["0", "-1.2", "abc", ""])
    def test_invalid_update_changes_nothing(self, tmp_path, value):
        path = tmp_path / "exchange.ini"
        path.write_text(f"{COEFFICIENT_KEY}=1.05\n")
        service = CurrencyService(path)

        with pytest.raises(InvalidPrice):
            service.update(value)

        assert service.coefficient == Decimal("1.05")
        assert path.read_text() == f"{COEFFICIENT_KEY}=1.05\n"

    def test_reload_sees_external_edit(self, tmp_path):
        path = tmp_path / "exchange.ini"
        service = CurrencyService(path)
        path.write_text(f"{COEFFICIENT_KEY}=0.95\n")

        assert service.reload() == Decimal("0.95")
        assert service.coefficient == Decimal("0.95")
