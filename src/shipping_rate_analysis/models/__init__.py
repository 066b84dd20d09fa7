from .env_cfg import EnvCfg
from .taxonomy import (
    UniversalServiceCategory,
    UniversalServiceInfo,
    UNIVERSAL_SERVICES,
    ServiceTaxonomy,
    CustomServiceCategory,
)
from .carrier import (
    CarrierType,
    CarrierServiceMapping,
    CustomCarrierServiceCode,
    CustomServiceMapping,
    CarrierAccount,
)
from .shipment import (
    FieldMapping,
    ResidentialSource,
    ServiceMappingResult,
    ResidentialDecision,
    ShipmentRecord,
)
from .rates import (
    CarrierRateQuote,
    QuoteRequest,
    QuoteResponse,
    OutcomeStatus,
    CarrierOutcome,
    OrphanReason,
    OrphanedShipment,
    BestRate,
    RateResolution,
    ServiceSubstitution,
)

__all__ = [
    "EnvCfg",
    "UniversalServiceCategory",
    "UniversalServiceInfo",
    "UNIVERSAL_SERVICES",
    "ServiceTaxonomy",
    "CustomServiceCategory",
    "CarrierType",
    "CarrierServiceMapping",
    "CustomCarrierServiceCode",
    "CustomServiceMapping",
    "CarrierAccount",
    "FieldMapping",
    "ResidentialSource",
    "ServiceMappingResult",
    "ResidentialDecision",
    "ShipmentRecord",
    "CarrierRateQuote",
    "QuoteRequest",
    "QuoteResponse",
    "OutcomeStatus",
    "CarrierOutcome",
    "OrphanReason",
    "OrphanedShipment",
    "BestRate",
    "RateResolution",
    "ServiceSubstitution",
]
