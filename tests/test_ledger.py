"""
Tests for mintermint/ledger/

Tests the marketplace contract handle with a mocked contract object and
a mocked AsyncWeb3 instance.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, Mock

import aiohttp
import pytest
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from mintermint.config import ZERO_ADDRESS
from mintermint.errors import (
    LedgerReadError,
    NotSeller,
    RevertCode,
    TransactionError,
    TransactionRejected,
    TransactionReverted,
    TransactionTimeout,
    InsufficientFunds,
)
from mintermint.ledger import Listing, MarketplaceLedger, translate_submit_error


# ============================================================================
# TEST HELPERS
# ============================================================================

CONTRACT = Web3.to_checksum_address("0x" + "cc" * 20)
ACCOUNT = Web3.to_checksum_address("0x" + "aa" * 20)
SELLER = Web3.to_checksum_address("0x" + "bb" * 20)


class ProviderError(Exception):
    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


def create_mock_function(result=None, error=None, tx=None):
    """Create a mock bound contract function."""
    fn = MagicMock()
    fn.call = AsyncMock(return_value=result, side_effect=error)
    fn.build_transaction = AsyncMock(return_value=tx or {"to": CONTRACT, "data": "0x01"})
    return fn


def create_mock_signer(tx_hash="0xhash"):
    signer = Mock()
    signer.send_transaction = AsyncMock(return_value=tx_hash)
    return signer


def create_ledger(contract=None, w3=None, signer=None):
    return MarketplaceLedger(
        w3=w3 or MagicMock(),
        contract_address=CONTRACT,
        account=ACCOUNT,
        signer=signer or create_mock_signer(),
        confirmation_timeout=5,
        poll_interval=0.01,
        contract=contract or MagicMock(),
    )


# ============================================================================
# READ TESTS
# ============================================================================

class TestLedgerReads:
    """Tests for read-only queries."""

    def test_requires_contract_address(self):
        with pytest.raises(ValueError):
            MarketplaceLedger(
                w3=MagicMock(), contract_address="", account=ACCOUNT, signer=create_mock_signer()
            )

    def test_marketplace_address_is_checksummed(self):
        ledger = create_ledger()
        assert ledger.marketplace_address == CONTRACT
        assert ledger.account == ACCOUNT

    @pytest.mark.asyncio
    async def test_get_listing(self):
        contract = MagicMock()
        contract.functions.listings.return_value = create_mock_function((SELLER, 5 * 10 ** 17))
        ledger = create_ledger(contract=contract)

        listing = await ledger.get_listing(2)

        assert listing == Listing(token_id=2, seller=SELLER, price_wei=5 * 10 ** 17)
        assert listing.is_active
        contract.functions.listings.assert_called_once_with(2)

    @pytest.mark.asyncio
    async def test_get_all_listings_keeps_order(self):
        contract = MagicMock()
        contract.functions.getAllListings.return_value = create_mock_function(
            ([(SELLER, 0), (SELLER, 5 * 10 ** 17)], [1, 2])
        )
        ledger = create_ledger(contract=contract)

        listings = await ledger.get_all_listings()

        assert [l.token_id for l in listings] == [1, 2]
        assert not listings[0].is_active
        assert listings[1].price_wei == 5 * 10 ** 17

    @pytest.mark.asyncio
    async def test_get_all_listings_length_mismatch(self):
        contract = MagicMock()
        contract.functions.getAllListings.return_value = create_mock_function(([(SELLER, 1)], [1, 2]))
        ledger = create_ledger(contract=contract)

        with pytest.raises(LedgerReadError):
            await ledger.get_all_listings()

    @pytest.mark.asyncio
    async def test_tokens_of_owner_checksums(self):
        contract = MagicMock()
        contract.functions.tokensOfOwner.return_value = create_mock_function([3, 1])
        ledger = create_ledger(contract=contract)

        assert await ledger.tokens_of_owner(ACCOUNT.lower()) == [3, 1]
        contract.functions.tokensOfOwner.assert_called_once_with(ACCOUNT)

    @pytest.mark.asyncio
    async def test_read_revert_becomes_read_error(self):
        contract = MagicMock()
        contract.functions.tokenURI.return_value = create_mock_function(
            error=ContractLogicError("execution reverted: nonexistent token")
        )
        ledger = create_ledger(contract=contract)

        with pytest.raises(LedgerReadError, match="nonexistent token"):
            await ledger.token_uri(99)

    @pytest.mark.asyncio
    async def test_read_transport_error(self):
        contract = MagicMock()
        contract.functions.getApproved.return_value = create_mock_function(error=ConnectionError("down"))
        ledger = create_ledger(contract=contract)

        with pytest.raises(LedgerReadError, match="down"):
            await ledger.get_approved(1)


# ============================================================================
# WRITE TESTS
# ============================================================================

class TestLedgerWrites:
    """Tests for transaction submission."""

    @pytest.mark.asyncio
    async def test_mint_builds_and_sends(self):
        contract = MagicMock()
        fn = create_mock_function(tx={"to": CONTRACT, "data": "0xmint"})
        contract.functions.mintNFT.return_value = fn
        signer = create_mock_signer("0xminted")
        ledger = create_ledger(contract=contract, signer=signer)

        tx_hash = await ledger.mint("ipfs://meta456")

        assert tx_hash == "0xminted"
        contract.functions.mintNFT.assert_called_once_with("ipfs://meta456")
        fn.build_transaction.assert_awaited_once_with({"from": ACCOUNT})
        signer.send_transaction.assert_awaited_once_with({"to": CONTRACT, "data": "0xmint"})

    @pytest.mark.asyncio
    async def test_buy_attaches_value(self):
        contract = MagicMock()
        fn = create_mock_function()
        contract.functions.buyNFT.return_value = fn
        ledger = create_ledger(contract=contract)

        await ledger.buy(2, 5 * 10 ** 17)

        fn.build_transaction.assert_awaited_once_with({"from": ACCOUNT, "value": 5 * 10 ** 17})

    @pytest.mark.asyncio
    async def test_approve_and_list_arguments(self):
        contract = MagicMock()
        contract.functions.approve.return_value = create_mock_function()
        contract.functions.listing.return_value = create_mock_function()
        ledger = create_ledger(contract=contract)

        await ledger.approve(CONTRACT.lower(), 4)
        await ledger.create_listing(4, 10)

        contract.functions.approve.assert_called_once_with(CONTRACT, 4)
        contract.functions.listing.assert_called_once_with(4, 10)

    @pytest.mark.asyncio
    async def test_simulated_revert_maps_to_not_seller(self):
        contract = MagicMock()
        fn = create_mock_function()
        fn.build_transaction.side_effect = ContractLogicError("execution reverted: Not seller")
        contract.functions.cancelListing.return_value = fn
        signer = create_mock_signer()
        ledger = create_ledger(contract=contract, signer=signer)

        with pytest.raises(NotSeller):
            await ledger.cancel_listing(1)
        signer.send_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_wallet_rejection(self):
        contract = MagicMock()
        contract.functions.mintNFT.return_value = create_mock_function()
        signer = create_mock_signer()
        signer.send_transaction.side_effect = ProviderError("User denied transaction signature", code=4001)
        ledger = create_ledger(contract=contract, signer=signer)

        with pytest.raises(TransactionRejected):
            await ledger.mint("ipfs://x")

    @pytest.mark.asyncio
    async def test_signing_is_serialized(self):
        contract = MagicMock()
        contract.functions.mintNFT.return_value = create_mock_function()
        active = 0
        peak = 0

        async def send(tx):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return "0xhash"

        signer = Mock()
        signer.send_transaction = send
        ledger = create_ledger(contract=contract, signer=signer)

        await asyncio.gather(ledger.mint("ipfs://a"), ledger.mint("ipfs://b"), ledger.mint("ipfs://c"))
        assert peak == 1


class TestTranslateSubmitError:
    """Tests for translate_submit_error."""

    def test_insufficient_funds_message(self):
        error = translate_submit_error("buyNFT(1)", ValueError("insufficient funds for gas * price + value"))
        assert isinstance(error, InsufficientFunds)

    def test_other_failure(self):
        error = translate_submit_error("mintNFT", RuntimeError("nonce too low"))
        assert type(error) is TransactionError
        assert "mintNFT" in str(error)

    def test_market_error_passes_through(self):
        original = TransactionRejected("no")
        assert translate_submit_error("x", original) is original


# ============================================================================
# CONFIRMATION TESTS
# ============================================================================

class TestLedgerConfirm:
    """Tests for confirm() and receipt decoding."""

    @pytest.mark.asyncio
    async def test_confirmed(self):
        w3 = MagicMock()
        receipt = {"status": 1, "blockNumber": 10, "logs": []}
        w3.eth.wait_for_transaction_receipt = AsyncMock(return_value=receipt)
        ledger = create_ledger(w3=w3)

        assert await ledger.confirm("0xhash") == receipt
        w3.eth.wait_for_transaction_receipt.assert_awaited_once_with(
            "0xhash", timeout=5, poll_latency=0.01
        )

    @pytest.mark.asyncio
    async def test_timeout(self):
        w3 = MagicMock()
        w3.eth.wait_for_transaction_receipt = AsyncMock(side_effect=TimeExhausted("slow"))
        ledger = create_ledger(w3=w3)

        with pytest.raises(TransactionTimeout) as exc_info:
            await ledger.confirm("0xhash")
        assert exc_info.value.tx_hash == "0xhash"

    @pytest.mark.asyncio
    async def test_node_failure_while_waiting(self):
        w3 = MagicMock()
        w3.eth.wait_for_transaction_receipt = AsyncMock(side_effect=aiohttp.ClientConnectionError("node down"))
        ledger = create_ledger(w3=w3)

        with pytest.raises(TransactionError) as exc_info:
            await ledger.confirm("0xhash")
        assert exc_info.value.tx_hash == "0xhash"
        assert "node down" in str(exc_info.value)
        assert not isinstance(exc_info.value, TransactionTimeout)

    @pytest.mark.asyncio
    async def test_reverted_receipt_replays_reason(self):
        w3 = MagicMock()
        w3.eth.wait_for_transaction_receipt = AsyncMock(return_value={"status": 0, "blockNumber": 10})
        w3.eth.get_transaction = AsyncMock(return_value={
            "from": ACCOUNT, "to": CONTRACT, "input": "0xbeef", "value": 7,
        })
        w3.eth.call = AsyncMock(side_effect=ContractLogicError("execution reverted: Incorrect price"))
        ledger = create_ledger(w3=w3)

        with pytest.raises(TransactionReverted) as exc_info:
            await ledger.confirm("0xhash")

        assert exc_info.value.code == RevertCode.LISTING_CHANGED
        assert exc_info.value.tx_hash == "0xhash"
        call_args = w3.eth.call.await_args.args
        assert call_args[0]["data"] == "0xbeef"
        assert call_args[1] == 9

    @pytest.mark.asyncio
    async def test_reverted_without_reason(self):
        w3 = MagicMock()
        w3.eth.wait_for_transaction_receipt = AsyncMock(return_value={"status": 0, "blockNumber": 10})
        w3.eth.get_transaction = AsyncMock(side_effect=ConnectionError("gone"))
        ledger = create_ledger(w3=w3)

        with pytest.raises(TransactionReverted) as exc_info:
            await ledger.confirm("0xhash")
        assert exc_info.value.code == RevertCode.UNKNOWN

    def test_minted_token_id(self):
        contract = MagicMock()
        contract.events.Transfer.return_value.process_receipt.return_value = [
            {"args": {"from": SELLER, "to": ACCOUNT, "tokenId": 1}},
            {"args": {"from": ZERO_ADDRESS, "to": ACCOUNT, "tokenId": 7}},
        ]
        ledger = create_ledger(contract=contract)

        assert ledger.minted_token_id({"logs": []}) == 7

    def test_minted_token_id_missing(self):
        contract = MagicMock()
        contract.events.Transfer.return_value.process_receipt.return_value = []
        ledger = create_ledger(contract=contract)

        assert ledger.minted_token_id({"logs": []}) is None
