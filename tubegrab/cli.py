"""
Command-line client for TubeGrab

Commands:
- info:     preview title, author and thumbnail of a video
- download: resolve a direct URL through the resolver service and save the file
- serve:    run the resolver service locally
"""

import asyncio
import functools
import logging
import sys
import webbrowser
from pathlib import Path

import click

from .client import (
    ClientError,
    DirectDownloadUnavailable,
    ResolverClient,
    extract_video_id,
    fetch_video_info,
)
from .config import settings
from .models import QUALITY_CHOICES, DEFAULT_QUALITY

logger = logging.getLogger(__name__)


def handle_error(func):
    """Turn client errors into a red one-line message and exit code 1"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)
        except ClientError as e:
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def _video_id_or_fail(url: str) -> str:
    url = url.strip()
    if not url:
        raise ClientError("Please enter a YouTube URL.")
    video_id = extract_video_id(url)
    if not video_id:
        raise ClientError("Invalid YouTube URL. Please check and try again.")
    return video_id


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
def cli(verbose):
    """TubeGrab - download YouTube videos in any quality"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@cli.command()
@click.argument('url')
@handle_error
def info(url):
    """Show title, author and thumbnail for URL"""
    video_id = _video_id_or_fail(url)
    video = asyncio.run(fetch_video_info(video_id))
    click.echo(f"Title:     {video.title}")
    click.echo(f"Author:    {video.author}")
    click.echo(f"Thumbnail: {video.thumbnail}")
    click.echo(f"Video ID:  {video.video_id}")


@cli.command()
@click.argument('url')
@click.option('--quality', '-q', type=click.Choice(QUALITY_CHOICES), default=DEFAULT_QUALITY,
              show_default=True, help='Target height, or "audio"')
@click.option('--output', '-o', type=click.Path(file_okay=False), default='.', help='Output directory')
@click.option('--server', default=None, help=f'Resolver base URL (default {settings.server_url})')
@click.option('--no-browser', is_flag=True, help='Do not open YouTube when direct download is unavailable')
@handle_error
def download(url, quality, output, server, no_browser):
    """Download URL at the chosen quality"""
    video_id = _video_id_or_fail(url)
    resolver = ResolverClient(server_url=server)

    async def _run():
        video = await fetch_video_info(video_id)
        click.echo(f"🎬 {video.title} by {video.author}")
        result = await resolver.resolve(video_id, quality)
        if result.video_only:
            click.echo(click.style(
                "Note: this stream has no audio track; the audio must be downloaded separately.",
                fg='yellow',
            ))
        return await resolver.download(result, video.title, Path(output))

    try:
        path = asyncio.run(_run())
    except DirectDownloadUnavailable as e:
        if not no_browser:
            webbrowser.open_new_tab(e.fallback_url)
            raise ClientError("Direct download is not available for this video. Opened YouTube instead.")
        raise ClientError(f"Direct download is not available for this video. Watch it at {e.fallback_url}")

    click.echo(click.style(f"✅ Saved to {path}", fg='green'))


@cli.command()
@click.option('--host', default='0.0.0.0', show_default=True)
@click.option('--port', default=8000, show_default=True, type=int)
def serve(host, port):
    """Run the resolver service"""
    import uvicorn
    # The group set the root logger up for client output; the service logs at LOG_LEVEL
    logging.getLogger().setLevel(getattr(logging, settings.log_level, logging.INFO))
    uvicorn.run("tubegrab.main:app", host=host, port=port)


if __name__ == '__main__':
    cli()
