"""CIDR helpers."""
import ipaddress


def next_subnet(cidr: str) -> str:
    """Return the subnet of the same prefix length right after ``cidr``.

    Raises:
        ValueError: If ``cidr`` is invalid or the next subnet would exceed
            the address space
    """
    network = ipaddress.ip_network(cidr, strict=False)
    try:
        start = network.broadcast_address + 1
    except ipaddress.AddressValueError as e:
        raise ValueError(f"subnet after {cidr} exceeds max address space") from e
    return str(ipaddress.ip_network(f"{start}/{network.prefixlen}"))
