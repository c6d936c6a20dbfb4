import asyncio

import click
import uvicorn

from rentals.config.settings import settings
from rentals.pool import PoolHandle


@click.group()
def cli():
    """Rentals API management commands"""


@cli.command("init-db")
def init_db():
    """Create all tables in the configured database"""

    async def run():
        pool = PoolHandle(settings=settings)
        try:
            await pool.create_all()
        finally:
            await pool.close()

    asyncio.run(run())
    click.echo("tables created")


@cli.command("serve")
@click.option("--host", default="0.0.0.0")
@click.option("--port", default=8000, type=int)
@click.option("--reload", is_flag=True, default=False)
def serve(host, port, reload):
    uvicorn.run(
        "rentals.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    cli()
