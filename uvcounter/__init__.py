"""Adaptive unique-visitor counting.

A ``UvCounter`` accepts a stream of client identifiers and reports how many
distinct ones it has seen. It starts as an exact set of narrow hashes and
promotes itself, one way only, to a bitmap and then to a HyperLogLog sketch
as cardinality grows, so memory stays bounded.

Example:
    from uvcounter import UvCounter, TierPolicy

    counter = UvCounter(TierPolicy.three_tier())
    for client_id in visits:
        counter.add(client_id)
    print(counter.count(), counter.tier.name)

    envelope = counter.to_dict()   # {"type": 0, "data": [...]}
    counter = UvCounter.from_dict(envelope)
"""

import logging

from uvcounter.config import TierPolicy, policy_from_env
from uvcounter.counter import Tier, UvCounter
from uvcounter.errors import CounterError, FormatError, PrecisionMismatchError, RangeError
from uvcounter.hashing import HashPolicy, hash_identifier, mix32
from uvcounter.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_file_logging,
    enable_json_logging,
    enable_timed_file_logging,
    set_level,
    set_module_level,
)
from uvcounter.stats import DailyStats, DomainStats, PageStats
from uvcounter.tiers import Bitmap, CounterTier, ExactTier, HyperLogLog

logging.getLogger("uvcounter").addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Counter
    "Tier",
    "TierPolicy",
    "UvCounter",
    "policy_from_env",
    # Tiers
    "Bitmap",
    "CounterTier",
    "ExactTier",
    "HyperLogLog",
    # Hashing
    "HashPolicy",
    "hash_identifier",
    "mix32",
    # Errors
    "CounterError",
    "FormatError",
    "PrecisionMismatchError",
    "RangeError",
    # Statistics model
    "DailyStats",
    "DomainStats",
    "PageStats",
    # Logging
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_file_logging",
    "enable_json_logging",
    "enable_timed_file_logging",
    "set_level",
    "set_module_level",
]
