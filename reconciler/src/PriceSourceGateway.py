"""PriceSourceGateway: Read-only access to price proxies, aggregators and fallback oracles.

Every call is a synchronous view call. Contract reverts are returned as
reverted CallResults and never retried; transport failures propagate.

.. code-block:: python

    >>> gateway = Web3PriceSourceGateway(ContractUtility("mainnet").w3)
    >>> result = gateway.get_latest_answer("0x773616e4d11a78f511299002da57a0a94577f1f4")
    >>> result.reverted
    False
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from .Addresses import normalize_address
from .CallResult import CallResult
from .ContractUtility import ContractUtility
from .PriceRecords import FeedType

if TYPE_CHECKING:
    from web3.contract import Contract

logger = logging.getLogger(__name__)

CONTRACT_NAMES = (
    "AaveOracle",
    "EACAggregatorProxy",
    "GenericOracleI",
    "IERC20Detailed",
    "IExtendedPriceAggregator",
)


class PriceSourceGateway(ABC):
    """Abstract base class for external price source reads."""

    @abstractmethod
    def get_asset_price(self, price_provider: str, asset: str) -> CallResult[int]:
        """Read an asset price from the primary price proxy.

        :param price_provider: Address of the price proxy contract.
        :param asset: Asset address.
        :returns: Price quoted in ETH, or a revert.
        """
        pass

    @abstractmethod
    def get_latest_answer(self, aggregator: str) -> CallResult[int]:
        """Read ``latestAnswer()`` from an aggregator or proxy.

        :param aggregator: Aggregator or proxy address.
        """
        pass

    @abstractmethod
    def get_token_type(self, aggregator: str) -> CallResult[FeedType]:
        """Probe whether a price source is simple or composite.

        Plain aggregators do not implement the probe and revert.

        :param aggregator: Price source address.
        """
        pass

    @abstractmethod
    def get_sub_tokens(self, aggregator: str) -> list[str]:
        """List the assets a composite price source is derived from.

        :param aggregator: Composite price source address.
        :returns: Lowercase sub-token addresses (empty if unavailable).
        """
        pass

    @abstractmethod
    def get_underlying_aggregator(self, proxy: str) -> CallResult[str]:
        """Resolve the aggregator currently behind a price proxy.

        :param proxy: Proxy address.
        """
        pass

    @abstractmethod
    def get_token_symbol(self, token: str) -> CallResult[str]:
        """Read the ERC20 ``symbol()`` of a token."""
        pass

    @abstractmethod
    def get_fallback_eth_usd_price(self, fallback_oracle: str) -> CallResult[int]:
        """Read ``getEthUsdPrice()`` (dev-network accessor) from a fallback oracle."""
        pass

    @abstractmethod
    def get_fallback_asset_price(
        self, fallback_oracle: str, asset: str
    ) -> CallResult[int]:
        """Read ``getAssetPrice(asset)`` from a fallback oracle."""
        pass


class Web3PriceSourceGateway(PriceSourceGateway):
    """Gateway backed by web3 view calls.

    :ivar w3: Web3 instance used for calls.
    :ivar abis: Contract ABIs by contract name.
    :ivar block_identifier: Block the calls are pinned to.
    """

    def __init__(self, w3: Web3, block_identifier: Any = "latest") -> None:
        """Initialize the gateway.

        :param w3: Connected Web3 instance.
        :param block_identifier: Block number or tag for all calls (default: "latest").
        """
        self.w3 = w3
        self.block_identifier = block_identifier
        self.abis: dict[str, list] = {
            name: ContractUtility.get_contract_abi(name) for name in CONTRACT_NAMES
        }

    def _contract(self, contract_name: str, address: str) -> Contract:
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(address),
            abi=self.abis[contract_name],
        )

    def _try_call(self, function: Any, description: str) -> CallResult:
        """Execute a contract function call, mapping reverts to a CallResult.

        :param function: Bound contract function.
        :param description: Call description for logging.
        :returns: CallResult with the raw return value.
        """
        try:
            return CallResult.ok(function.call(block_identifier=self.block_identifier))
        except (ContractLogicError, BadFunctionCallOutput) as exc:
            logger.debug(f"{description} reverted: {exc}")
            return CallResult.revert(str(exc))

    def get_asset_price(self, price_provider: str, asset: str) -> CallResult[int]:
        contract = self._contract("AaveOracle", price_provider)
        return self._try_call(
            contract.functions.getAssetPrice(Web3.to_checksum_address(asset)),
            f"getAssetPrice({asset}) on {price_provider}",
        )

    def get_latest_answer(self, aggregator: str) -> CallResult[int]:
        contract = self._contract("IExtendedPriceAggregator", aggregator)
        return self._try_call(
            contract.functions.latestAnswer(), f"latestAnswer() on {aggregator}"
        )

    def get_token_type(self, aggregator: str) -> CallResult[FeedType]:
        contract = self._contract("IExtendedPriceAggregator", aggregator)
        result = self._try_call(
            contract.functions.getTokenType(), f"getTokenType() on {aggregator}"
        )
        if result.reverted:
            return result
        return CallResult.ok(FeedType.from_token_type(result.value))

    def get_sub_tokens(self, aggregator: str) -> list[str]:
        contract = self._contract("IExtendedPriceAggregator", aggregator)
        result = self._try_call(
            contract.functions.getSubTokens(), f"getSubTokens() on {aggregator}"
        )
        if result.reverted:
            logger.warning(f"Composite source {aggregator} did not return sub-tokens")
            return []
        return [normalize_address(token) for token in result.value]

    def get_underlying_aggregator(self, proxy: str) -> CallResult[str]:
        contract = self._contract("EACAggregatorProxy", proxy)
        result = self._try_call(contract.functions.aggregator(), f"aggregator() on {proxy}")
        if result.reverted:
            return result
        return CallResult.ok(normalize_address(result.value))

    def get_token_symbol(self, token: str) -> CallResult[str]:
        contract = self._contract("IERC20Detailed", token)
        return self._try_call(contract.functions.symbol(), f"symbol() on {token}")

    def get_fallback_eth_usd_price(self, fallback_oracle: str) -> CallResult[int]:
        contract = self._contract("GenericOracleI", fallback_oracle)
        return self._try_call(
            contract.functions.getEthUsdPrice(),
            f"getEthUsdPrice() on {fallback_oracle}",
        )

    def get_fallback_asset_price(
        self, fallback_oracle: str, asset: str
    ) -> CallResult[int]:
        contract = self._contract("GenericOracleI", fallback_oracle)
        return self._try_call(
            contract.functions.getAssetPrice(Web3.to_checksum_address(asset)),
            f"getAssetPrice({asset}) on {fallback_oracle}",
        )
