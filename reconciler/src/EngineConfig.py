"""EngineConfig: Deployment settings of the reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field

from .Addresses import MKR_ADDRESS, MOCK_USD_ADDRESS, normalize_address

# Oracle version per deployment. Version 1 is the legacy protocol oracle.
DEFAULT_ORACLE_VERSION: dict[str, int] = {
    "mainnet": 2,
    "mainnet-v1": 1,
    "polygon": 2,
    "avalanche": 2,
    "localnet": 2,
}


def default_symbol_overrides() -> dict[str, str]:
    """Return the historical compatibility-symbol overrides."""
    return {MKR_ADDRESS: "MKR"}


@dataclass
class EngineConfig:
    """Settings fixed for the lifetime of the engine.

    :ivar oracle_version: Version assigned to the oracle singleton on creation.
    :ivar usd_base_unit_address: Asset used as the USD unit of account.
    :ivar legacy_symbol_overrides: Asset address to pinned compatibility symbol.
    """

    oracle_version: int = 1
    usd_base_unit_address: str = MOCK_USD_ADDRESS
    legacy_symbol_overrides: dict[str, str] = field(
        default_factory=default_symbol_overrides
    )

    def __post_init__(self) -> None:
        """Validate the version and normalize addresses.

        :raises ValueError: If oracle_version is below 1.
        """
        if self.oracle_version < 1:
            raise ValueError("oracle_version must be at least 1")
        self.usd_base_unit_address = normalize_address(self.usd_base_unit_address)
        self.legacy_symbol_overrides = {
            normalize_address(asset): symbol
            for asset, symbol in self.legacy_symbol_overrides.items()
        }

    @classmethod
    def for_network(cls, network_name: str, **overrides) -> EngineConfig:
        """Build a config with the network's default oracle version.

        :param network_name: Network name (e.g., "mainnet", "mainnet-v1").
        :param overrides: Field values taking precedence over the defaults.
        :raises ValueError: If the network has no default version and none is given.
        """
        if "oracle_version" not in overrides or overrides["oracle_version"] is None:
            version = DEFAULT_ORACLE_VERSION.get(network_name)
            if version is None:
                raise ValueError(f"No oracle version configured for network {network_name}")
            overrides["oracle_version"] = version
        return cls(**{k: v for k, v in overrides.items() if v is not None})
