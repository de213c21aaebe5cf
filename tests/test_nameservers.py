"""
Brief: Tests for dnscache.nameservers discovery and ordering.

Inputs:
  - None

Outputs:
  - None
"""

import pytest

from dnscache.errors import ConfigError
from dnscache.nameservers import NameServerResolver, parse_resolv_conf_nameservers


def test_parse_resolv_conf_skips_comments_and_invalid(tmp_path):
    """
    Brief: Only valid nameserver lines are returned, in file order.

    Inputs:
      - resolv.conf with comments, options and a bogus entry

    Outputs:
      - None: Asserts parsed list
    """
    p = tmp_path / "resolv.conf"
    p.write_text(
        "# generated\n"
        "search lan\n"
        "nameserver 10.0.0.1  # primary\n"
        "; nameserver 10.0.0.99\n"
        "nameserver not-an-ip\n"
        "options edns0\n"
        "nameserver 2001:db8::53\n"
    )
    assert parse_resolv_conf_nameservers(str(p)) == ["10.0.0.1", "2001:db8::53"]


def test_parse_resolv_conf_missing_file(tmp_path):
    """
    Brief: An unreadable file yields an empty list.
    """
    assert parse_resolv_conf_nameservers(str(tmp_path / "missing")) == []


def test_override_comes_first_and_duplicates_dropped(resolv_conf):
    """
    Brief: Override is the primary; resolv.conf entries follow without repeats.

    Inputs:
      - override 192.0.2.1 plus resolv.conf containing 192.0.2.53

    Outputs:
      - None: Asserts ordering and primary()
    """
    r = NameServerResolver("192.0.2.1", resolv_conf=resolv_conf)
    assert r.nameservers == ["192.0.2.1", "192.0.2.53"]
    assert r.primary() == "192.0.2.1"

    r2 = NameServerResolver("192.0.2.53", resolv_conf=resolv_conf)
    assert r2.nameservers == ["192.0.2.53"]


def test_system_resolvers_used_without_override(resolv_conf):
    """
    Brief: Without an override the first resolv.conf entry is primary.
    """
    r = NameServerResolver(None, resolv_conf=resolv_conf)
    assert r.primary() == "192.0.2.53"


def test_no_nameserver_is_config_error(tmp_path):
    """
    Brief: No override and no resolv.conf entries fails initialization.

    Inputs:
      - empty resolv.conf

    Outputs:
      - None: Asserts ConfigError
    """
    p = tmp_path / "resolv.conf"
    p.write_text("search lan\n")
    with pytest.raises(ConfigError):
        NameServerResolver(None, resolv_conf=str(p))


def test_invalid_override_is_config_error(resolv_conf):
    """
    Brief: A non-IP override is rejected rather than silently ignored.
    """
    with pytest.raises(ConfigError):
        NameServerResolver("dns.example", resolv_conf=resolv_conf)


def test_from_environ_reads_named_variable(resolv_conf):
    """
    Brief: from_environ uses the configured environment variable.

    Inputs:
      - environ mapping with MY_NS set

    Outputs:
      - None: Asserts override first
    """
    r = NameServerResolver.from_environ(
        {"MY_NS": " 198.51.100.7 "}, env_var="MY_NS", resolv_conf=resolv_conf
    )
    assert r.nameservers == ["198.51.100.7", "192.0.2.53"]

    r2 = NameServerResolver.from_environ({}, env_var="MY_NS", resolv_conf=resolv_conf)
    assert r2.nameservers == ["192.0.2.53"]
