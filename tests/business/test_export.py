"""CSV export tests."""
import re

import pytest

from business import BusinessRuleError, export_csv, to_csv


class TestToCsv:

    def test_format(self):
        records = [
            {"name": 'Asha "AJ"', "walletBalance": 250, "isMember": True,
             "coupons": [{"code": "X"}], "notes": None},
        ]
        assert to_csv(records) == (
            "name,walletBalance,isMember,coupons,notes\n"
            '"Asha ""AJ""",250,true,"[{""code"": ""X""}]",'
        )

    def test_header_comes_from_first_record(self):
        text = to_csv([{"a": 1}, {"a": 2, "b": 3}])
        assert text.splitlines() == ["a", "1", "2"]

    def test_empty_input(self):
        with pytest.raises(BusinessRuleError, match="No data to export"):
            to_csv([])


class TestExportFile:

    def test_writes_dated_file(self, tmp_path):
        path = export_csv([{"id": "1", "name": "Gel"}], "inventory", tmp_path)
        assert re.fullmatch(r"inventory_\d{4}-\d{2}-\d{2}\.csv", path.name)
        assert path.read_text(encoding="utf-8") == 'id,name\n"1","Gel"'
