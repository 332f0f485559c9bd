"""main モジュールのテスト."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from serp_history.main import run

FIXTURE = Path(__file__).parent / "fixtures" / "historical_serp.json"


@pytest.fixture(autouse=True)
def _no_log_file():
    with patch("serp_history.main.setup_logging"):
        yield


class TestRun:
    """run のテスト."""

    def test_report_from_saved_response(self, tmp_path):
        output = tmp_path / "report.json"

        code = run([
            "chaussures running",
            "--input", str(FIXTURE),
            "--domain", "b.com",
            "--search-volume", "1000",
            "--output", str(output),
        ])

        assert code == 0
        report = json.loads(output.read_text(encoding="utf-8"))
        assert report["keyword"] == "chaussures running"
        assert report["latest_comparison"]["volatility_score"] == 0
        assert report["latest_comparison"]["from_timestamp"] == "2024-02-01T10:00:00+00:00"
        assert report["volatility"]["average_volatility"] == pytest.approx(0.375)
        assert report["volatility"]["trend"] == "stable"
        assert report["volatility_level"] == "moderate"
        assert [d["domain"] for d in report["domains"]] == ["b.com", "a.com", "d.com", "c.com"]
        assert report["features"] == {"people_also_ask": 2, "featured_snippet": 1}
        assert report["domain_metrics"] == {
            "domain": "b.com",
            "rank_group": 1,
            "rank_absolute": 1,
            "estimated_ctr": 0.316,
            "estimated_traffic": 316,
            "visibility_score": 50,
        }

    def test_date_window(self, tmp_path):
        output = tmp_path / "report.json"

        code = run([
            "chaussures running",
            "--input", str(FIXTURE),
            "--date-from", "2024-01-01",
            "--date-to", "2024-02-15",
            "--output", str(output),
        ])

        assert code == 0
        report = json.loads(output.read_text(encoding="utf-8"))
        comparison = report["latest_comparison"]
        assert comparison["volatility_score"] == 0.75
        assert [d["domain"] for d in comparison["new_domains"]] == ["d.com"]
        assert [d["domain"] for d in comparison["lost_domains"]] == ["c.com"]
        assert report["domain_metrics"] is None

    @patch("serp_history.main.load_dataforseo_config")
    @patch("serp_history.main.fetch_historical_serp", return_value=None)
    def test_fetch_failure(self, mock_fetch, mock_config):
        assert run(["chaussures running"]) == 1
        mock_fetch.assert_called_once()

    @patch("serp_history.main.load_dataforseo_config")
    @patch("serp_history.main.fetch_historical_serp")
    def test_fetch_and_compare(self, mock_fetch, mock_config):
        mock_fetch.return_value = json.loads(FIXTURE.read_text(encoding="utf-8"))

        assert run(["chaussures running", "--location", "2250", "--language", "fr"]) == 0
        mock_fetch.assert_called_once_with(
            mock_config.return_value,
            "chaussures running",
            2250,
            "fr",
            date_from=None,
            date_to=None,
        )

    def test_no_snapshots(self, tmp_path):
        empty = tmp_path / "empty.json"
        empty.write_text(json.dumps({"status_code": 20000, "tasks": []}), encoding="utf-8")

        assert run(["chaussures running", "--input", str(empty)]) == 1

    def test_metrics_use_organic_position(self, tmp_path):
        """上に強調スニペットがあっても CTR はオーガニック内の順位で推定すること."""
        output = tmp_path / "report.json"

        code = run([
            "chaussures running",
            "--input", str(FIXTURE),
            "--date-to", "2024-01-15",
            "--domain", "a.com",
            "--search-volume", "1000",
            "--output", str(output),
        ])

        assert code == 0
        metrics = json.loads(output.read_text(encoding="utf-8"))["domain_metrics"]
        assert metrics["rank_group"] == 1
        assert metrics["rank_absolute"] == 2
        assert metrics["estimated_ctr"] == 0.316
        assert metrics["estimated_traffic"] == 316
        assert metrics["visibility_score"] == 50

    @pytest.mark.parametrize("option,value", [
        ("--date-from", "2024-1-1"),
        ("--date-to", "01/02/2024"),
        ("--date-from", "2024-13-01"),
    ])
    def test_invalid_date(self, option, value):
        assert run(["chaussures running", "--input", str(FIXTURE), option, value]) == 1

    @patch("serp_history.main.load_dataforseo_config")
    @patch("serp_history.main.fetch_historical_serp")
    def test_invalid_date_skips_fetch(self, mock_fetch, mock_config):
        assert run(["chaussures running", "--date-from", "2024-1-1"]) == 1
        mock_fetch.assert_not_called()

    def test_missing_input_file(self, tmp_path):
        assert run(["chaussures running", "--input", str(tmp_path / "missing.json")]) == 1

    @pytest.mark.parametrize("content", ["not json", "[1, 2, 3]"])
    def test_unreadable_input(self, tmp_path, content):
        broken = tmp_path / "broken.json"
        broken.write_text(content, encoding="utf-8")

        assert run(["chaussures running", "--input", str(broken)]) == 1
