"""Local POST target for trying posthammer out.

Counts the POST requests it receives and prints the running total.
Start it, then point posthammer at it:

    python examples/echo_target.py --port 8080
    posthammer 4 25 http://127.0.0.1:8080/ --share-worker-connection
"""

from __future__ import annotations

import typer
from aiohttp import web
from rich.console import Console

console = Console()

POSTS_KEY = web.AppKey("posts", list)


async def _handle_post(request: web.Request) -> web.Response:
    """Drain the body and acknowledge the request."""
    await request.read()
    posts = request.app[POSTS_KEY]
    posts.append(request.remote or "")
    console.print(f"POST #{len(posts)} from {request.remote}", highlight=False)
    return web.Response(text="ok")


def main(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(8080, "--port", "-p", help="Port to listen on."),
) -> None:
    """Serve POST / and count every request."""
    app = web.Application()
    app[POSTS_KEY] = []
    app.router.add_post("/", _handle_post)
    web.run_app(app, host=host, port=port)


if __name__ == "__main__":
    typer.run(main)
