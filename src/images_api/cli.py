# cli.py
import click
import logging
from images_api.config.settings import get_settings

# Configure logging
logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@click.group()
def cli():
    """CLI commands for the Images API"""
    pass


@cli.command()
@click.option("--host", default=None, help="Interface to bind (defaults to HOST)")
@click.option("--port", type=int, default=None, help="Port to listen on (defaults to PORT)")
@click.option("--reload/--no-reload", default=False, help="Restart on code changes")
def serve(host, port, reload):
    """Start the Images API server"""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)

    host = host or settings.host
    port = port or settings.port

    logger.info(f"Server is running on port {port}")
    uvicorn.run(
        "images_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
        server_header=False,
    )


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    for key, value in settings.masked().items():
        print(f"  {key}: {value}")
    if settings.uses_default_token:
        print("WARNING: the default upload token is insecure; set TOKEN.")


if __name__ == "__main__":
    cli()
