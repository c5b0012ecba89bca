"""
Data store: where fetched reviews and reports end up on disk.

Plain files only, one folder per plugin and per day:

    reports/
        woocommerce/
            2026-10-19/
                reviews.json      raw dataset (reload with load_reviews)
                reviews.csv       spreadsheet view, one row per review
                report.md         review analysis report
                competitors.json  competitor discovery result
                competitors.md    competitor report

Running twice on the same day overwrites that day's files.
"""

import json
import logging
import os
import re
from datetime import date
from typing import Optional

import pandas as pd

from wp_agent import config
from wp_agent.models import CompetitorResult, ReviewDataset

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["rating", "title", "author", "date", "content", "source_url"]
_DATE_DIR = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _base_dir(base_dir: Optional[str]) -> str:
    return base_dir or config.REPORTS_DIR


def get_report_dir(plugin_slug: str, base_dir: str = None, day: date = None) -> str:
    """reports/<slug>/<YYYY-MM-DD> for today (or the given day)."""
    day = day or date.today()
    return os.path.join(_base_dir(base_dir), plugin_slug, day.isoformat())


def ensure_report_dir(plugin_slug: str, base_dir: str = None, day: date = None) -> str:
    report_dir = get_report_dir(plugin_slug, base_dir, day)
    os.makedirs(report_dir, exist_ok=True)
    return report_dir


def _write_text(path: str, content: str) -> str:
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    logger.info("Saved %s", path)
    return path


def save_reviews(dataset: ReviewDataset, base_dir: str = None, day: date = None) -> str:
    """Write the dataset as JSON. Returns the file path."""
    report_dir = ensure_report_dir(dataset.plugin_slug, base_dir, day)
    path = os.path.join(report_dir, "reviews.json")
    return _write_text(path, json.dumps(dataset.to_dict(), indent=2, ensure_ascii=False))


def load_reviews(path: str) -> ReviewDataset:
    with open(path, encoding="utf-8") as f:
        return ReviewDataset.from_dict(json.load(f))


def reviews_to_frame(dataset: ReviewDataset) -> pd.DataFrame:
    """One row per review, columns in CSV_COLUMNS order."""
    rows = [
        {
            "rating": r.rating,
            "title": r.title,
            "author": r.author,
            "date": r.raw_date,
            "content": r.content,
            "source_url": r.source_url,
        }
        for r in dataset.records
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def save_reviews_csv(dataset: ReviewDataset, base_dir: str = None, day: date = None) -> str:
    report_dir = ensure_report_dir(dataset.plugin_slug, base_dir, day)
    path = os.path.join(report_dir, "reviews.csv")
    reviews_to_frame(dataset).to_csv(path, index=False, encoding="utf-8")
    logger.info("Saved %s", path)
    return path


def save_markdown_report(plugin_slug: str, content: str, filename: str = "report.md",
                         base_dir: str = None, day: date = None) -> str:
    report_dir = ensure_report_dir(plugin_slug, base_dir, day)
    return _write_text(os.path.join(report_dir, filename), content)


def save_competitors(result: CompetitorResult, base_dir: str = None, day: date = None) -> str:
    report_dir = ensure_report_dir(result.target_plugin.slug, base_dir, day)
    path = os.path.join(report_dir, "competitors.json")
    return _write_text(path, json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


def list_reports(plugin_slug: str, base_dir: str = None) -> list[str]:
    """Dates (YYYY-MM-DD) that have a report folder for this plugin, oldest first."""
    plugin_dir = os.path.join(_base_dir(base_dir), plugin_slug)
    if not os.path.isdir(plugin_dir):
        return []
    return sorted(d for d in os.listdir(plugin_dir) if _DATE_DIR.match(d))
