"""
Command line entry point.

    wp-agent reviews woocommerce --months 6 --csv
    wp-agent competitors contact-form-7 --max 5
    wp-agent analyze reports/woocommerce/2026-10-19/reviews.json
"""

import dataclasses
import logging
import os

import click

from wp_agent import config, datastore
from wp_agent.competitors import find_competitors
from wp_agent.errors import AgentError, ConfigError
from wp_agent.events import ProgressListener
from wp_agent.processor import deduplicate
from wp_agent.reports import render_competitor_report, render_review_report, render_summary
from wp_agent.scraper import scrape_reviews


class EchoListener(ProgressListener):
    """Prints progress the way a human wants to watch it scroll by."""

    def on_page_fetched(self, plugin_slug, page_index, record_count):
        click.echo(f"  Page {page_index}: found {record_count} reviews")

    def on_record_skipped(self, plugin_slug, index, reason):
        click.echo(f"  Skipped review {index}: {reason}", err=True)

    def on_stop(self, plugin_slug, reason):
        click.echo(f"  Stopped: {reason}")

    def on_target_resolved(self, plugin_slug, name, tags):
        click.echo(f"Target plugin: {name}")
        click.echo(f"Tags: {', '.join(tags) or 'none'}")

    def on_search(self, strategy, term, result_count):
        click.echo(f"  Search by {strategy} '{term}': {result_count} plugins")

    def on_candidate_accepted(self, plugin_slug, score):
        click.secho(f"  + {plugin_slug} (relevance {score})", fg="green")

    def on_candidate_rejected(self, plugin_slug, reason):
        click.echo(f"  - {plugin_slug}: {reason}")


@click.group()
@click.option("-v", "--verbose", count=True, help="-v for info logging, -vv for debug.")
def cli(verbose):
    """Scrape WordPress.org plugin reviews and find competing plugins."""
    try:
        config.validate()
    except ConfigError as e:
        raise click.ClickException(str(e))

    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = getattr(logging, str(config.LOG_LEVEL).upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.argument("plugin_slug")
@click.option("--months", default=lambda: config.DEFAULT_MONTHS_BACK,
              type=click.IntRange(min=1), help="How many months of reviews to keep.")
@click.option("--max-pages", default=lambda: config.DEFAULT_MAX_PAGES,
              type=click.IntRange(min=1), help="Maximum listing pages to fetch.")
@click.option("--delay", default=lambda: config.REQUEST_DELAY,
              type=click.FloatRange(min=0), help="Seconds between requests.")
@click.option("--csv", "export_csv", is_flag=True, help="Also export reviews.csv.")
@click.option("--reports-dir", default=None, type=click.Path(file_okay=False),
              help="Where report folders are written.")
def reviews(plugin_slug, months, max_pages, delay, export_csv, reports_dir):
    """Fetch, analyze and save a plugin's recent reviews."""
    click.echo(f"Fetching reviews for: {plugin_slug} (last {months} months, max {max_pages} pages)")
    try:
        dataset = scrape_reviews(plugin_slug, months_back=months, max_pages=max_pages,
                                 delay=delay, listener=EchoListener())
    except AgentError as e:
        raise click.ClickException(str(e))

    unique = deduplicate(dataset.records)
    dataset = dataclasses.replace(dataset, records=unique, in_range_count=len(unique))
    click.echo(f"Reviews within time range: {len(unique)} (of {dataset.total_fetched} collected)")

    path = datastore.save_reviews(dataset, base_dir=reports_dir)
    click.echo(f"Data saved to: {path}")
    if export_csv:
        click.echo(f"CSV saved to: {datastore.save_reviews_csv(dataset, base_dir=reports_dir)}")

    click.echo()
    click.echo(render_summary(dataset))
    report_path = datastore.save_markdown_report(plugin_slug, render_review_report(dataset),
                                                 base_dir=reports_dir)
    click.echo(f"\nReport saved to: {report_path}")

    if dataset.error:
        raise click.ClickException(f"Pagination stopped on an error, partial results saved: {dataset.error}")


@cli.command()
@click.argument("plugin_slug")
@click.option("--max", "max_competitors", default=lambda: config.DEFAULT_MAX_COMPETITORS,
              type=click.IntRange(min=1), help="Maximum competitors to report.")
@click.option("--delay", default=lambda: config.REQUEST_DELAY,
              type=click.FloatRange(min=0), help="Seconds between requests.")
@click.option("--reports-dir", default=None, type=click.Path(file_okay=False),
              help="Where report folders are written.")
def competitors(plugin_slug, max_competitors, delay, reports_dir):
    """Find plugins that compete with PLUGIN_SLUG."""
    click.echo(f"Finding competitors for: {plugin_slug}")
    try:
        result = find_competitors(plugin_slug, max_competitors=max_competitors,
                                  delay=delay, listener=EchoListener())
    except AgentError as e:
        raise click.ClickException(str(e))

    click.echo(f"\nFound {len(result.competitors)} competitors")
    datastore.save_competitors(result, base_dir=reports_dir)
    path = datastore.save_markdown_report(plugin_slug, render_competitor_report(result),
                                          filename="competitors.md", base_dir=reports_dir)
    click.echo(f"Report saved to: {path}")


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--markdown", is_flag=True, help="Print the full Markdown report instead.")
def analyze(path, markdown):
    """Re-analyze a saved reviews.json without fetching anything."""
    try:
        dataset = datastore.load_reviews(path)
    except (OSError, ValueError, KeyError) as e:
        raise click.ClickException(f"Could not load {os.path.basename(path)}: {e}")
    click.echo(render_review_report(dataset) if markdown else render_summary(dataset))


def main():
    cli()


if __name__ == "__main__":
    main()
