"""Tests for the flat-file report store."""

import json
import sys
from datetime import date, datetime
from pathlib import Path

import pandas as pd

sys.path.insert(0, str(Path(__file__).parent))
from conftest import NOW, make_plugin, make_review

from wp_agent import datastore
from wp_agent.models import CompetitorResult, ReviewDataset

DAY = date(2026, 10, 19)


def sample_dataset():
    records = [
        make_review("Great", "ann", rating=5, content="Works well.",
                    url="https://wordpress.org/support/topic/great/"),
        make_review("Broken", "bob", day=datetime(2026, 9, 2), rating=1, content="Fatal error."),
    ]
    return ReviewDataset(
        plugin_slug="foo",
        fetched_at=NOW,
        cutoff=datetime(2026, 4, 19, 12, 0),
        months_back=6,
        total_fetched=3,
        in_range_count=2,
        pages_fetched=1,
        stop_reason="stop_cutoff",
        records=records,
    )


def test_get_report_dir(tmp_path):
    assert datastore.get_report_dir("foo", str(tmp_path), DAY) == str(tmp_path / "foo" / "2026-10-19")


def test_save_and_load_reviews(tmp_path):
    dataset = sample_dataset()
    path = datastore.save_reviews(dataset, base_dir=str(tmp_path), day=DAY)

    assert path == str(tmp_path / "foo" / "2026-10-19" / "reviews.json")
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    assert raw["plugin_slug"] == "foo"
    assert raw["reviews"][1]["date"] == "September 02, 2026"

    loaded = datastore.load_reviews(path)
    assert loaded.records == dataset.records
    assert loaded.cutoff == dataset.cutoff
    assert loaded.stop_reason == "stop_cutoff"
    assert loaded.total_fetched == 3


def test_save_reviews_csv(tmp_path):
    path = datastore.save_reviews_csv(sample_dataset(), base_dir=str(tmp_path), day=DAY)
    frame = pd.read_csv(path)

    assert list(frame.columns) == datastore.CSV_COLUMNS
    assert frame["title"].tolist() == ["Great", "Broken"]
    assert frame["rating"].tolist() == [5, 1]


def test_empty_dataset_still_has_csv_header(tmp_path):
    dataset = sample_dataset()
    dataset.records = []
    frame = datastore.reviews_to_frame(dataset)
    assert list(frame.columns) == datastore.CSV_COLUMNS
    assert frame.empty


def test_save_markdown_report_overwrites_same_day(tmp_path):
    datastore.save_markdown_report("foo", "first", base_dir=str(tmp_path), day=DAY)
    path = datastore.save_markdown_report("foo", "second", base_dir=str(tmp_path), day=DAY)

    assert Path(path).read_text(encoding="utf-8") == "second"


def test_save_competitors(tmp_path):
    target = make_plugin("foo", tags=["reviews"])
    result = CompetitorResult(target_plugin=target, competitors=[make_plugin("bar")],
                              total_found=1, candidates_considered=4, scores={"bar": 35})
    path = datastore.save_competitors(result, base_dir=str(tmp_path), day=DAY)

    data = json.loads(Path(path).read_text(encoding="utf-8"))
    assert Path(path).name == "competitors.json"
    assert data["target_plugin"]["tags"] == ["reviews"]
    assert data["competitors"][0]["slug"] == "bar"
    assert data["scores"] == {"bar": 35}


def test_list_reports(tmp_path):
    for name in ("2026-10-19", "2026-09-01", "notes"):
        (tmp_path / "foo" / name).mkdir(parents=True)

    assert datastore.list_reports("foo", base_dir=str(tmp_path)) == ["2026-09-01", "2026-10-19"]
    assert datastore.list_reports("missing", base_dir=str(tmp_path)) == []
