import csv
import io
import json
from datetime import date

from church_admin.services.report_export import (
    download_filename,
    export_format,
    report_file_path,
    slugify,
    to_csv,
    to_json,
)


def test_csv_union_headers_and_quoting():
    rows = [
        {"name": "Youth, Young Adults", "members": 3},
        {"name": 'The "A" Team', "leaders": ["Ann", "Ben"]},
    ]
    text = to_csv(rows)

    parsed = list(csv.DictReader(io.StringIO(text)))
    assert list(parsed[0].keys()) == ["name", "members", "leaders"]
    assert parsed[0]["name"] == "Youth, Young Adults"
    assert parsed[0]["leaders"] == ""
    assert parsed[1]["name"] == 'The "A" Team'
    assert json.loads(parsed[1]["leaders"]) == ["Ann", "Ben"]


def test_csv_empty():
    assert to_csv([]) == ""


def test_json_is_pretty():
    assert to_json({"a": 1}) == '{\n  "a": 1\n}'


def test_paths_and_names():
    assert slugify("Membership Report - Last Month") == "membership-report-last-month"
    assert slugify("!!!") == "report"
    assert report_file_path("Zone Review", "abc", "json") == "reports/zone-review-abc.json"
    assert report_file_path("Zone Review", "abc", "xlsx") == "reports/zone-review-abc.csv"
    assert download_filename("Zone Review", "csv", today=date(2024, 5, 1)) == "zone-review-2024-05-01.csv"


def test_export_format():
    assert export_format("reports/x.JSON") == "json"
    assert export_format("reports/x.csv") == "csv"
    assert export_format(None) == "csv"
