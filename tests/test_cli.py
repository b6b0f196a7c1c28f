"""
Tests for the schedule CLI.
"""

import json
import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from reporting import cli


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the CLI from replacing pytest's log handlers."""
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)


@pytest.fixture
def reports_dir(tmp_path, monkeypatch):
    out = tmp_path / "reports"
    monkeypatch.setenv("REPORTS_DIR", str(out))
    return out


@pytest.fixture
def schedule_file(tmp_path):
    data = {
        "reference_id": "VAL-CLI-001",
        "subject": {
            "address": "3 St Andrews Drive, Cabarita VIC 3505",
            "land_area": 850,
            "bedrooms": 4,
            "car_spaces": 20,
        },
        "comparables": [
            {
                "address": "17 Fifteenth Street, Mildura VIC 3500",
                "price": 2_500_000,
                "land_area": 800,
                "bedrooms": 3,
                "car_spaces": 15,
            }
        ],
        "yield_rate": 5.0,
    }
    path = tmp_path / "schedule.json"
    path.write_text(json.dumps(data))
    return path


class TestSampleCommand:

    def test_writes_pdf(self, reports_dir, capsys):
        exit_code = cli.main(["sample"])

        assert exit_code == 0
        assert (reports_dir / "VAL-20240601-001.pdf").exists()
        assert "Schedule generated" in capsys.readouterr().out

    def test_output_dir_flag(self, reports_dir, tmp_path):
        target = tmp_path / "elsewhere"

        assert cli.main(["--output-dir", str(target), "sample"]) == 0
        assert (target / "VAL-20240601-001.pdf").exists()


class TestGenerateCommand:

    def test_generate_pdf(self, reports_dir, schedule_file):
        assert cli.main(["generate", str(schedule_file)]) == 0
        assert (reports_dir / "VAL-CLI-001.pdf").exists()

    def test_json_output(self, reports_dir, schedule_file, capsys):
        exit_code = cli.main(["generate", str(schedule_file), "--json"])

        assert exit_code == 0
        data = json.loads(capsys.readouterr().out)
        indication = data["indications"][0]
        # Land +22,500, bedrooms +15,000, car spaces +8,500
        assert indication["totals"]["total_dollar"] == pytest.approx(46_000)
        assert indication["adjusted_value"] == pytest.approx(2_546_000)
        assert indication["rates"]["capitalised_value"] == pytest.approx(127_300)
        assert data["reconciliation"]["count"] == 1
        assert data["policy"]["name"] == "residential"
        assert not reports_dir.exists()

    def test_missing_file(self, tmp_path, capsys):
        exit_code = cli.main(["generate", str(tmp_path / "absent.json")])

        assert exit_code == 1
        assert "File not found" in capsys.readouterr().err

    def test_invalid_json(self, tmp_path, capsys):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        assert cli.main(["generate", str(path)]) == 1
        assert "Invalid JSON" in capsys.readouterr().err

    def test_invalid_schedule(self, tmp_path, capsys):
        path = tmp_path / "no_subject.json"
        path.write_text(json.dumps({"comparables": []}))

        assert cli.main(["generate", str(path)]) == 1
        assert "Invalid schedule data" in capsys.readouterr().err

    @pytest.mark.parametrize("record, field, value", [
        ("comparables", "land_area", "800"),
        ("comparables", "land_area", {"value": "800", "unit": "sqm"}),
        ("comparables", "condition", 3),
        ("comparables", "price", "2500000"),
        ("comparables", "price", True),
        ("comparables", "bedrooms", "3"),
        ("comparables", "esg_adjustment", "1.0"),
        ("comparables", "transaction_date", 20240601),
        ("subject", "living_area", [420]),
        ("subject", "market_trend", 1),
    ])
    @pytest.mark.parametrize("json_flag", [True, False])
    def test_wrongly_typed_value(self, schedule_file, reports_dir, capsys,
                                 record, field, value, json_flag):
        data = json.loads(schedule_file.read_text())
        target = data["subject"] if record == "subject" else data["comparables"][0]
        target[field] = value
        schedule_file.write_text(json.dumps(data))

        argv = ["generate", str(schedule_file)] + (["--json"] if json_flag else [])

        assert cli.main(argv) == 1
        assert "Invalid schedule data" in capsys.readouterr().err
        assert not reports_dir.exists()

    @pytest.mark.parametrize("data", [
        [],
        {"subject": "3 St Andrews Drive", "comparables": []},
        {"subject": {}, "comparables": [2_500_000]},
        {"subject": {}, "comparables": [], "rates": ["Land Area"]},
        {"subject": {}, "comparables": [], "included": [1]},
    ])
    def test_wrongly_shaped_schedule(self, tmp_path, capsys, data):
        path = tmp_path / "shape.json"
        path.write_text(json.dumps(data))

        assert cli.main(["generate", str(path), "--json"]) == 1
        assert "Invalid schedule data" in capsys.readouterr().err

    def test_zero_price_json_reports_error(self, tmp_path, capsys):
        path = tmp_path / "zero.json"
        path.write_text(json.dumps({
            "subject": {"bedrooms": 3},
            "comparables": [{"price": 0, "bedrooms": 2}],
        }))

        assert cli.main(["generate", str(path), "--json"]) == 1
        assert "base price must be positive" in capsys.readouterr().err

    def test_unknown_asset_class(self, schedule_file, capsys):
        data = json.loads(schedule_file.read_text())
        data["asset_class"] = "agricultural"
        schedule_file.write_text(json.dumps(data))

        assert cli.main(["generate", str(schedule_file), "--json"]) == 1
        assert "agricultural" in capsys.readouterr().err

    def test_no_valid_comparables_pdf(self, tmp_path, reports_dir, capsys):
        path = tmp_path / "zero.json"
        path.write_text(json.dumps({
            "subject": {"bedrooms": 3},
            "comparables": [{"price": 0, "bedrooms": 2}],
        }))

        assert cli.main(["generate", str(path)]) == 1
        assert "not generated" in capsys.readouterr().err
