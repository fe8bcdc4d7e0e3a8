"""Counter tiers: the representations a ``UvCounter`` migrates through.

Quick Reference:
    ExactTier: Set of hashed values, exact over hashes
    Bitmap: Fixed bit vector over a bounded hash space
    HyperLogLog: Fixed register array, ~1.04/√m relative error

Example:
    from uvcounter.tiers import HyperLogLog

    hll = HyperLogLog(precision=14)
    for visitor_id in visitors:
        hll.add(visitor_id)
    print(f"~{hll.count()} unique visitors")
"""

from uvcounter.tiers.base import CounterTier
from uvcounter.tiers.bitmap import Bitmap
from uvcounter.tiers.exact import ExactTier
from uvcounter.tiers.hexcodec import decode_hex, encode_hex
from uvcounter.tiers.hyperloglog import HyperLogLog

__all__ = [
    "Bitmap",
    "CounterTier",
    "ExactTier",
    "HyperLogLog",
    "decode_hex",
    "encode_hex",
]
