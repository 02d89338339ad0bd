"""whisperflow serve: run the HTTP/WebSocket server."""

from __future__ import annotations

import click


@click.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=3000, type=int, help="Bind port")
@click.option("--cache-dir", default=None, type=click.Path(), help="Hub cache directory")
def serve_cmd(host: str, port: int, cache_dir: str | None) -> None:
    """Serve the language, model and transcription endpoints."""
    try:
        import uvicorn
    except ImportError:
        raise ImportError(
            "uvicorn is required for the server. "
            "Install with: pip install whisperflow[server]"
        )

    from whisperflow.acquisition import CacheManager, HubClient
    from whisperflow.server.app import create_app

    uvicorn.run(create_app(CacheManager(HubClient(cache_dir))), host=host, port=port)
