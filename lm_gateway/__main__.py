"""Entry point when the package is executed as a module."""

import sys

import click
import uvloop

from .platform.server.lifecycle import GatewayServer, ServerStartError
from .platform.settings import AppHTTPSettings, Settings


@click.command()
@click.option("--host", default=None, help="Interface to bind (default from settings)")
@click.option("--port", type=int, default=None, help="Port to bind (default from settings)")
@click.option("--log-level", default=None, help="Root log level (default from settings)")
def main(host=None, port=None, log_level=None):
    settings = Settings()
    overrides = {
        key: value
        for key, value in {"host": host, "port": port, "log_level": log_level}.items()
        if value is not None
    }
    if overrides:
        settings.app_http = AppHTTPSettings.model_validate(
            {**settings.app_http.model_dump(), **overrides}
        )

    server = GatewayServer(settings)
    try:
        uvloop.run(server.serve_forever())
    except ServerStartError as e:
        raise click.ClickException(str(e)) from e


if __name__ == "__main__":
    sys.exit(main())
