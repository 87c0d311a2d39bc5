import pytest

from hostedctl.modules.models import ClusterIdentity, DNSNames
from hostedctl.utils.naming import fnv32a, generate_name


@pytest.mark.parametrize("value,expected", [
    ("", "811c9dc5"),
    ("a", "e40c292c"),
    ("foobar", "bf9cf968"),
])
def test_fnv32a_known_vectors(value, expected):
    assert fnv32a(value) == expected


def test_short_name_is_unchanged():
    assert generate_name("abcde-demo", "api", 32) == "abcde-demo-api"


def test_long_name_is_shortened_with_hash():
    base = "abcdefghij-klmnopqrstuvwxyz0123456789"
    name = generate_name(base, "api", 32)
    assert len(name) == 32
    assert name == f"{base[:19]}-{fnv32a(base)}-api"


def test_long_names_are_deterministic_and_distinct():
    first = "cluster-infra-1234567890-production-east"
    second = "cluster-infra-1234567890-production-west"
    assert generate_name(first, "apps", 32) == generate_name(first, "apps", 32)
    assert generate_name(first, "apps", 32) != generate_name(second, "apps", 32)


def test_suffix_longer_than_budget_falls_back_to_hash_only():
    name = generate_name("abcdefghijklmnop", "longsuffix", 12)
    assert len(name) == 12
    assert name.startswith("abc-")


def test_identity_names_for_short_cluster():
    identity = ClusterIdentity(name="demo", infra_name="abcde")
    assert identity.api_lb_name == "abcde-demo-api"
    assert identity.oauth_tg_name == "abcde-demo-oauth"
    assert identity.router_lb_name == "abcde-demo-apps"
    assert identity.router_http_tg_name == "abcde-demo-http"
    assert identity.router_https_tg_name == "abcde-demo-https"
    assert identity.vpn_lb_name == "abcde-demo-vpn"
    assert identity.bucket_name == "abcde-demo-ign"
    assert identity.worker_machineset_name == "abcde-demo-worker"
    assert identity.user_data_secret_name == "demo-user-data"


def test_identity_names_respect_provider_limits():
    identity = ClusterIdentity(name="a-very-long-hosted-cluster-name", infra_name="mgmt-cluster-x8k2l")
    for name in (identity.api_lb_name, identity.router_lb_name, identity.vpn_lb_name,
                 identity.oauth_tg_name, identity.router_https_tg_name):
        assert len(name) <= 32
    assert identity.api_lb_name.endswith("-api")
    assert len(identity.bucket_name) <= 63


def test_dns_names():
    dns = DNSNames(name="demo", parent_domain="example.com")
    assert dns.api == "api.demo.example.com"
    assert dns.vpn == "vpn.demo.example.com"
    assert dns.ingress_subdomain == "apps.demo.example.com"
    assert dns.router_wildcard == "*.apps.demo.example.com"
