"""Per-provider source clients."""

from econfeed.config.constants import Source
from econfeed.ingestion.base import SourceClient

from .bea_client import BEAClient
from .bls_client import BLSClient
from .census_client import CensusClient
from .fred_client import FREDClient
from .world_bank_client import WorldBankClient

CLIENT_CLASSES: dict[Source, type[SourceClient]] = {
    Source.BEA: BEAClient,
    Source.CENSUS: CensusClient,
    Source.FRED: FREDClient,
    Source.BLS: BLSClient,
    Source.WORLD_BANK: WorldBankClient,
}

__all__ = [
    "BEAClient",
    "BLSClient",
    "CensusClient",
    "FREDClient",
    "WorldBankClient",
    "CLIENT_CLASSES",
]
