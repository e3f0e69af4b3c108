"""
Tests for mintermint/cli.py

Runs the click commands with a mocked MarketplaceClient.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from mintermint.catalog import CatalogEntry, TokenMetadata
from mintermint.cli import main
from mintermint.errors import ListingChanged, WalletUnavailable
from mintermint.publisher import AssetDraft
from mintermint.wallet import Session
from mintermint.workflows import ListingResult, MintResult, PurchaseResult, TxResult


SELLER = "0x" + "bb" * 20


def create_mock_client():
    """Create a mock client usable as an async context manager."""
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    client.connect = AsyncMock()
    client.restore = AsyncMock()
    client.session = Session()
    return client


@pytest.fixture
def mock_client():
    client = create_mock_client()
    with patch("mintermint.cli.MarketplaceClient") as client_cls:
        client_cls.from_config.return_value = client
        client.cls = client_cls
        yield client


def invoke(*args, env=None):
    return CliRunner().invoke(main, list(args), env=env or {})


class TestCliCommands:
    """Tests for the happy paths."""

    def test_mint(self, mock_client):
        mock_client.mint = AsyncMock(return_value=MintResult("ipfs://meta456", "0xmint", 7, 12))

        result = invoke("mint", "ipfs://meta456")

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["token_id"] == 7
        mock_client.connect.assert_awaited_once()
        mock_client.mint.assert_awaited_once_with("ipfs://meta456")
        mock_client.__aexit__.assert_awaited_once()

    def test_create(self, mock_client, tmp_path):
        image = tmp_path / "cat.png"
        image.write_bytes(b"\x89PNG")
        mock_client.create = AsyncMock(return_value=MintResult("ipfs://meta456", "0xmint", 1))

        result = invoke("create", str(image), "--name", "Cat", "--description", "A cat")

        assert result.exit_code == 0, result.output
        draft = mock_client.create.await_args.args[0]
        assert isinstance(draft, AssetDraft)
        assert draft.name == "Cat"
        assert draft.image == b"\x89PNG"

    def test_list(self, mock_client):
        mock_client.list_token = AsyncMock(return_value=ListingResult(3, 5 * 10 ** 17, "0.5", "0xlist"))

        result = invoke("list", "3", "0.5")

        assert result.exit_code == 0, result.output
        mock_client.list_token.assert_awaited_once_with(3, "0.5")
        assert json.loads(result.output)["price_eth"] == "0.5"

    def test_cancel(self, mock_client):
        mock_client.cancel_listing = AsyncMock(return_value=TxResult("0xcancel", 9))

        result = invoke("cancel", "3")

        assert result.exit_code == 0, result.output
        mock_client.cancel_listing.assert_awaited_once_with(3)

    def test_buy_with_seller(self, mock_client):
        mock_client.buy = AsyncMock(return_value=PurchaseResult(3, SELLER, 5 * 10 ** 17, "0.5", "0xbuy"))

        result = invoke("buy", "3", "0.5", "--seller", SELLER)

        assert result.exit_code == 0, result.output
        mock_client.buy.assert_awaited_once_with(3, "0.5", expected_seller=SELLER)

    def test_marketplace_lists_entries(self, mock_client):
        entry = CatalogEntry(
            token_id=2,
            metadata=TokenMetadata("Cat", "A cat", "ipfs://img", "https://gw/ipfs/img"),
            is_listed=True,
            price_eth="0.5",
            seller=SELLER,
        )
        mock_client.marketplace = AsyncMock(return_value=[entry])

        result = invoke("marketplace")

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data[0]["token_id"] == 2
        assert data[0]["metadata"]["name"] == "Cat"

    def test_my_assets_owner(self, mock_client):
        mock_client.my_assets = AsyncMock(return_value=[])

        result = invoke("my-assets", "--owner", SELLER)

        assert result.exit_code == 0, result.output
        mock_client.my_assets.assert_awaited_once_with(SELLER)

    def test_status_does_not_prompt(self, mock_client):
        result = invoke("status", env={"MINTERMINT_CONTRACT_ADDRESS": SELLER})

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["config"]["contract_address"] == SELLER
        assert data["session"]["connected"] is False
        mock_client.restore.assert_awaited_once()
        mock_client.connect.assert_not_called()


class TestCliOptions:
    """Tests for group options and error reporting."""

    def test_overrides_apply_to_config(self, mock_client):
        mock_client.cancel_listing = AsyncMock(return_value=TxResult("0xcancel"))

        result = invoke("--chain-id", "5", "--rpc-url", "http://node:8545", "cancel", "1")

        assert result.exit_code == 0, result.output
        config = mock_client.cls.from_config.call_args.args[0]
        assert config.chain_id == 5
        assert config.rpc_url == "http://node:8545"

    def test_market_error_exits_1(self, mock_client):
        mock_client.buy = AsyncMock(side_effect=ListingChanged(3, 5 * 10 ** 17, 10 ** 18))

        result = invoke("buy", "3", "0.5")

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "changed" in result.output

    def test_no_wallet_exits_1(self, mock_client):
        mock_client.connect.side_effect = WalletUnavailable("No wallet provider available")

        result = invoke("mint", "ipfs://x")

        assert result.exit_code == 1
        assert "No wallet provider" in result.output

    def test_invalid_environment(self, mock_client):
        result = invoke("marketplace", env={"MINTERMINT_CHAIN_ID": "mainnet"})

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
