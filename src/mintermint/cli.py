"""
mintermint/cli.py

Command line interface.

Usage:
    mintermint status
    mintermint create cat.png --name Cat --description "A cat"
    mintermint list 7 0.5
    mintermint buy 7 0.5 --seller 0x...
    mintermint --log-level INFO marketplace

Connection settings come from the MINTERMINT_* and PINATA_* environment
variables; the group options override them.
"""

import asyncio
import json
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Optional

import click

from .client import MarketplaceClient
from .config import MarketConfig
from .errors import MarketError
from .publisher import AssetDraft

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _to_jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


def _run(ctx: click.Context, action: Callable[[MarketplaceClient], Awaitable[Any]], connect: bool = True) -> None:
    """Run one async action against a fresh client and print its result."""
    config: MarketConfig = ctx.obj["config"]

    async def runner():
        async with MarketplaceClient.from_config(config, auto_refresh=False) as client:
            if connect:
                await client.connect()
            return await action(client)

    try:
        result = asyncio.run(runner())
    except (MarketError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    click.echo(json.dumps(_to_jsonable(result), indent=2))


@click.group()
@click.option("--rpc-url", default=None, help="JSON-RPC endpoint (overrides MINTERMINT_RPC_URL)")
@click.option("--contract", "contract_address", default=None, help="Marketplace contract address")
@click.option("--chain-id", type=int, default=None, help="Expected chain id")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    help="Logging verbosity",
)
@click.pass_context
def main(ctx, rpc_url, contract_address, chain_id, log_level):
    """Mint, list and trade tokens on the marketplace contract."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = MarketConfig.from_env()
        overrides = {
            key: value for key, value in (
                ("rpc_url", rpc_url),
                ("contract_address", contract_address),
                ("chain_id", chain_id),
            )
            if value is not None
        }
        if overrides:
            config = replace(config, **overrides)
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e
    ctx.obj = {"config": config}


@main.command()
@click.pass_context
def status(ctx):
    """Show configuration and the already-authorized account, if any."""
    config: MarketConfig = ctx.obj["config"]

    async def action(client: MarketplaceClient):
        await client.restore()
        return {"config": config.to_dict(), "session": client.session.to_dict()}

    _run(ctx, action, connect=False)


@main.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@click.option("--name", required=True, help="Token name")
@click.option("--description", required=True, help="Token description")
@click.pass_context
def create(ctx, image, name, description):
    """Upload IMAGE with its metadata and mint a token for it."""
    draft = AssetDraft.from_file(image, name=name, description=description)

    async def action(client: MarketplaceClient):
        return await client.create(draft)

    _run(ctx, action)


@main.command()
@click.argument("token_uri")
@click.pass_context
def mint(ctx, token_uri):
    """Mint a token for an already published TOKEN_URI."""
    async def action(client: MarketplaceClient):
        return await client.mint(token_uri)

    _run(ctx, action)


@main.command(name="list")
@click.argument("token_id", type=int)
@click.argument("price")
@click.pass_context
def list_token(ctx, token_id, price):
    """List TOKEN_ID for sale at PRICE (ETH)."""
    async def action(client: MarketplaceClient):
        return await client.list_token(token_id, price)

    _run(ctx, action)


@main.command()
@click.argument("token_id", type=int)
@click.pass_context
def cancel(ctx, token_id):
    """Cancel the listing of TOKEN_ID."""
    async def action(client: MarketplaceClient):
        return await client.cancel_listing(token_id)

    _run(ctx, action)


@main.command()
@click.argument("token_id", type=int)
@click.argument("price")
@click.option("--seller", default=None, help="Abort unless the listing belongs to this seller")
@click.pass_context
def buy(ctx, token_id, price, seller: Optional[str]):
    """Buy TOKEN_ID, paying exactly PRICE (ETH)."""
    async def action(client: MarketplaceClient):
        return await client.buy(token_id, price, expected_seller=seller)

    _run(ctx, action)


@main.command(name="my-assets")
@click.option("--owner", default=None, help="Account to enumerate (default: connected account)")
@click.pass_context
def my_assets(ctx, owner):
    """Show tokens owned by the connected account."""
    async def action(client: MarketplaceClient):
        return await client.my_assets(owner)

    _run(ctx, action)


@main.command()
@click.pass_context
def marketplace(ctx):
    """Show all active listings."""
    async def action(client: MarketplaceClient):
        return await client.marketplace()

    _run(ctx, action)


if __name__ == "__main__":
    main()
