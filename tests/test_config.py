"""
Tests for mintermint/config.py
"""

import pytest

from mintermint.config import (
    DEFAULT_CATALOG_CONCURRENCY,
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_GATEWAY_URL,
    DEFAULT_RPC_URL,
    MarketConfig,
    PinataCredentials,
)


class TestPinataCredentials:
    """Tests for PinataCredentials."""

    def test_unconfigured(self):
        assert not PinataCredentials().is_configured()

    def test_key_pair_headers(self):
        creds = PinataCredentials(api_key="key", api_secret="secret")
        assert creds.is_configured()
        assert creds.headers() == {
            "pinata_api_key": "key",
            "pinata_secret_api_key": "secret",
        }

    def test_jwt_preferred(self):
        creds = PinataCredentials(api_key="key", api_secret="secret", jwt="token")
        assert creds.headers() == {"Authorization": "Bearer token"}

    def test_repr_hides_secrets(self):
        creds = PinataCredentials(api_key="key", api_secret="secret", jwt="token")
        assert "secret" not in repr(creds)
        assert "token" not in repr(creds)


class TestMarketConfig:
    """Tests for MarketConfig."""

    def test_defaults(self):
        config = MarketConfig()
        assert config.rpc_url == DEFAULT_RPC_URL
        assert config.gateway_url == DEFAULT_GATEWAY_URL
        assert config.chain_id is None
        assert config.confirmation_timeout == DEFAULT_CONFIRMATION_TIMEOUT
        assert config.catalog_concurrency == DEFAULT_CATALOG_CONCURRENCY

    def test_gateway_gets_trailing_slash(self):
        config = MarketConfig(gateway_url="https://ipfs.io/ipfs")
        assert config.gateway_url == "https://ipfs.io/ipfs/"

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            MarketConfig(catalog_concurrency=0)

    def test_invalid_timeout(self):
        with pytest.raises(ValueError):
            MarketConfig(confirmation_timeout=0)

    def test_from_env(self):
        env = {
            "MINTERMINT_RPC_URL": "https://rpc.example.org",
            "MINTERMINT_CONTRACT_ADDRESS": "0x" + "11" * 20,
            "MINTERMINT_CHAIN_ID": "0xaa36a7",
            "MINTERMINT_PRIVATE_KEY": "0x" + "22" * 32,
            "MINTERMINT_CONFIRMATION_TIMEOUT": "30",
            "MINTERMINT_CATALOG_CONCURRENCY": "4",
            "PINATA_JWT": "jwt",
        }
        config = MarketConfig.from_env(env)
        assert config.rpc_url == "https://rpc.example.org"
        assert config.contract_address == "0x" + "11" * 20
        assert config.chain_id == 11155111
        assert config.confirmation_timeout == 30.0
        assert config.catalog_concurrency == 4
        assert config.pinata.jwt == "jwt"

    def test_from_empty_env(self):
        config = MarketConfig.from_env({})
        assert config.contract_address == ""
        assert config.private_key == ""
        assert not config.pinata.is_configured()

    def test_bad_number_in_env(self):
        with pytest.raises(ValueError):
            MarketConfig.from_env({"MINTERMINT_POLL_INTERVAL": "soon"})

    def test_to_dict_omits_secrets(self):
        config = MarketConfig(private_key="0x" + "22" * 32, pinata=PinataCredentials(jwt="jwt"))
        data = config.to_dict()
        assert data["local_signer"] is True
        assert data["pinata_configured"] is True
        assert "0x" + "22" * 32 not in str(data)
        assert "private_key" not in repr(config)
