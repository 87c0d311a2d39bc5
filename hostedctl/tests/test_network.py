import pytest

from hostedctl.utils.network import next_subnet


@pytest.mark.parametrize("cidr,expected", [
    ("172.30.0.0/16", "172.31.0.0/16"),
    ("10.128.0.0/14", "10.132.0.0/14"),
    ("10.0.0.5/24", "10.0.1.0/24"),
])
def test_next_subnet(cidr, expected):
    assert next_subnet(cidr) == expected


def test_next_subnet_exceeding_address_space():
    with pytest.raises(ValueError):
        next_subnet("255.255.255.0/24")
