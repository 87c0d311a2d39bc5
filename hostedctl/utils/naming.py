"""Deterministic, length-bounded names for cloud and cluster resources.

Uninstall rebuilds every name from the cluster name and infra name alone, so
these functions must stay pure: same inputs, same output, forever.
"""

FNV32_OFFSET = 0x811C9DC5
FNV32_PRIME = 0x01000193

# Provider limits
LOAD_BALANCER_NAME_MAX = 32
TARGET_GROUP_NAME_MAX = 32
BUCKET_NAME_MAX = 63
MACHINESET_NAME_MAX = 63


def fnv32a(value: str) -> str:
    """32-bit FNV-1a hash of ``value`` as 8 lowercase hex digits."""
    h = FNV32_OFFSET
    for byte in value.encode("utf-8"):
        h ^= byte
        h = (h * FNV32_PRIME) & 0xFFFFFFFF
    return f"{h:08x}"


def generate_name(base: str, suffix: str, max_length: int) -> str:
    """Join ``base`` and ``suffix`` with a dash, shortening to ``max_length``.

    Names that fit are returned unchanged. Longer names keep the suffix and
    replace the tail of the base with a hash of the full base, so distinct
    bases still produce distinct names.

    Args:
        base: Leading part of the name, e.g. ``<infra>-<cluster>``
        suffix: Role of the resource, e.g. ``api``
        max_length: Maximum length accepted by the provider

    Returns:
        A name no longer than ``max_length``
    """
    if max_length <= 0:
        return ""
    name = f"{base}-{suffix}"
    if len(name) <= max_length:
        return name

    # room left for the base once "-<hash>-<suffix>" is appended
    base_length = max_length - 10 - len(suffix)
    if base_length < 0:
        prefix = base[:min(len(base), max(0, max_length - 9))]
        short_name = f"{prefix}-{fnv32a(name)}"
        return short_name[:min(max_length, len(short_name))]

    return f"{base[:base_length]}-{fnv32a(base)}-{suffix}"
