"""Console entry point: serve the API with uvicorn.

Usage:  slotmatch [port]
"""

from __future__ import annotations

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

from slotmatch import __version__
from slotmatch.dependencies import get_config

console = Console()


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )

    import uvicorn

    port = int(sys.argv[1]) if len(sys.argv) > 1 else 8000
    cfg = get_config()
    console.print(f"[bold cyan]Slotmatch v{__version__}[/bold cyan] (database: {cfg.db_path}, model: {cfg.llm_model})")
    if cfg.llm_provider == "openai" and not cfg.openai_api_key:
        console.print("[yellow]OPENAI_API_KEY not set; ranking endpoints will fail until it is configured.[/yellow]")

    uvicorn.run("slotmatch.main:app", host="127.0.0.1", port=port, log_config=None)


if __name__ == "__main__":
    main()
