"""Shared utility helpers used across the accountant."""

from .random import (
    create_rng,
    reseed_rng,
    sample_noise,
)
from .config import (
    RuntimeConfig,
    get_config,
    configure,
)
from .serialization import (
    FORMAT_VERSION,
    serialize_to_json,
    deserialize_from_json,
    mask_sensitive_data,
    VersionedPayload,
)
from .logging import (
    get_logger,
    configure_logging,
    PrivacyFilter,
)
from .param_validation import (
    ensure,
    ensure_type,
    ensure_non_negative_number,
    ParamValidationError,
)

__all__ = [
    "create_rng",
    "reseed_rng",
    "sample_noise",
    "RuntimeConfig",
    "get_config",
    "configure",
    "FORMAT_VERSION",
    "serialize_to_json",
    "deserialize_from_json",
    "mask_sensitive_data",
    "VersionedPayload",
    "get_logger",
    "configure_logging",
    "PrivacyFilter",
    "ensure",
    "ensure_type",
    "ensure_non_negative_number",
    "ParamValidationError",
]
