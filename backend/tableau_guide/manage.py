import asyncio
import logging
import os
import sys

import click

from .config import ConfigurationError, Settings
from .services.gemini import GeminiFileStore
from .services.provisioner import DocumentProvisioner

logger = logging.getLogger(__name__)


def configure_logging():
    logging.basicConfig(
        level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )


def load_settings() -> Settings:
    """Load settings or terminate the process on a configuration error"""
    try:
        return Settings.from_env()
    except ConfigurationError as e:
        logger.critical(f"CRITICAL: {str(e)}")
        click.echo(f'Error: {str(e)}', err=True)
        sys.exit(1)


@click.group()
def cli():
    """Tableau Guide management commands"""
    configure_logging()


@cli.command('serve')
@click.option('--host', default=None, help='Interface to bind (default: HOST or 0.0.0.0)')
@click.option('--port', type=int, default=None, help='Port to listen on (default: PORT or 3000)')
def serve(host, port):
    """Run the answering service"""
    import uvicorn

    from . import create_app

    settings = load_settings()
    host = host or settings.host
    port = port or settings.port

    app = create_app(settings)
    logger.info(f"Tableau Guide server (Gemini powered) running on port {port}")
    logger.info(f"SSE Endpoint: http://localhost:{port}/sse")
    logger.info(f"Widget script: http://localhost:{port}/widget/chat-widget.js")
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


@cli.command('upload-manual')
def upload_manual():
    """Download the manual and upload it to the Gemini File API (one-shot)"""
    configure_logging()
    settings = load_settings()
    provisioner = DocumentProvisioner(settings, GeminiFileStore(settings.gemini_api_key))

    document = asyncio.run(provisioner.ensure_available())

    if document.is_active:
        click.echo('File is ready to use!')
        click.echo(f'File URI: {document.uri}')
        click.echo(f'File Name: {document.remote_name}')
        return

    click.echo(f'Error: Upload failed with state: {document.state.value} ({document.error})', err=True)
    sys.exit(1)


@cli.command('status')
def status():
    """Show the remote state of the manual"""
    settings = load_settings()
    provisioner = DocumentProvisioner(settings, GeminiFileStore(settings.gemini_api_key))

    remote = asyncio.run(provisioner.find_existing())
    if remote is None:
        click.echo(f"No uploaded file named '{settings.manual_display_name}'")
        sys.exit(1)

    click.echo(f'{"Name":<20} {"State":<12} URI')
    click.echo('-' * 80)
    click.echo(f'{remote.name:<20} {remote.state:<12} {remote.uri}')


if __name__ == '__main__':
    cli()
