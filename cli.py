#!/usr/bin/env python
"""
ScholarSense CLI Tool
Command-line interface for scraping researcher profiles
"""

import click
import json
from pathlib import Path
from typing import Optional

from scholarsense import ScholarScraper, __version__
from scholarsense.config import config
from scholarsense.exceptions import ScrapeError
from scholarsense.utils.logger import get_logger

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    ScholarSense - researcher profile scraping

    学者主页数据采集
    """
    pass


@cli.command()
@click.option('--url', '-u', required=True, help='Google Scholar profile URL')
@click.option('--output', '-o', default='data/profile.json', help='Output file path')
@click.option('--concurrency', '-c', type=int, default=None, help='Detail page workers (default from config)')
@click.option('--deadline', '-d', type=float, default=None, help='Cancel the scrape after this many seconds')
@click.option('--sort-by-discovery', is_flag=True, default=False, help='Order publications by profile-list position')
@click.option('--all-or-nothing', is_flag=True, default=False, help='Fail instead of keeping partial results on cancellation')
@click.option('--headed', is_flag=True, default=False, help='Show the browser window')
def scrape(url: str, output: str, concurrency: Optional[int], deadline: Optional[float],
           sort_by_discovery: bool, all_or_nothing: bool, headed: bool):
    """Scrape a researcher profile and its publications"""

    click.echo(f"Scraping {url} ...")

    settings = config
    if headed:
        settings = config.model_copy(
            update={"spider": config.spider.model_copy(update={"headless": False})}
        )

    scraper = ScholarScraper(settings=settings, max_workers=concurrency)

    try:
        result = scraper.scrape(
            url,
            deadline=deadline,
            all_or_nothing=all_or_nothing,
            sort_by_discovery=sort_by_discovery or None,
        )
    except ScrapeError as e:
        click.echo(json.dumps({"success": False, **e.to_dict()}, ensure_ascii=False), err=True)
        raise click.Abort()

    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)

    click.echo(
        f"Collected {len(result.publications)}/{result.profile.publication_count} publications "
        f"for {result.profile.name or 'unknown researcher'}"
    )
    if result.dropped_count:
        click.echo(f"Dropped {result.dropped_count} publications (see 'dropped' in output)")
    if result.cancelled:
        click.echo("Scrape was cancelled before all publications were fetched")
    click.echo(f"Saved to {output}")


@cli.command()
@click.option('--host', default='0.0.0.0', help='Host to bind')
@click.option('--port', default=8000, help='Port to bind')
def api(host: str, port: int):
    """Launch API server"""

    click.echo(f"Starting API server at http://{host}:{port}")
    click.echo("Press Ctrl+C to stop")

    import subprocess
    subprocess.run([
        'uvicorn', 'api:app',
        '--host', host,
        '--port', str(port),
    ])


@cli.command()
def version():
    """Show version information"""

    click.echo(f"\nScholarSense v{__version__}")
    click.echo("Researcher profile scraping\n")


if __name__ == '__main__':
    cli()
