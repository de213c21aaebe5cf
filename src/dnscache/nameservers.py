"""Upstream nameserver discovery.

Brief:
  The ordered nameserver list is built once at startup: an explicit override
  (from an environment variable) first, then every `nameserver` entry of the
  system resolv.conf. An empty list is a fatal ConfigError.
"""

from __future__ import annotations

import ipaddress
import logging
import os
from typing import List, Mapping, Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_RESOLV_CONF = "/etc/resolv.conf"
DEFAULT_NAMESERVER_ENV = "DNSCACHE_NAMESERVER"


def parse_resolv_conf_nameservers(path: str = DEFAULT_RESOLV_CONF) -> List[str]:
    """Brief: Best-effort parse of nameserver entries from a resolv.conf file.

    Inputs:
      - path: Filesystem path to a resolv.conf-format file.

    Outputs:
      - List of nameserver IP strings in the order encountered. Returns an empty
        list when the file cannot be read. Entries that are not IP addresses are
        skipped.

    Notes:
      - search/domain/options directives are ignored; only nameservers matter.
    """

    servers: List[str] = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except OSError as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return []

    for line in lines:
        raw = line.split("#", 1)[0].split(";", 1)[0].strip()
        if not raw:
            continue
        parts = raw.split()
        if len(parts) < 2 or parts[0].lower() != "nameserver":
            continue
        try:
            ipaddress.ip_address(parts[1])
        except ValueError:
            logger.warning("Skipping invalid nameserver %r in %s", parts[1], path)
            continue
        servers.append(parts[1])
    return servers


class NameServerResolver:
    """Ordered upstream nameserver list; only the first entry is queried.

    Inputs:
      - override: Optional explicit nameserver IP, placed first.
      - resolv_conf: Path of the system resolver configuration.

    Outputs:
      - NameServerResolver instance

    Raises:
      - ConfigError: when the override is not an IP address or when no
        nameserver was found at all.
    """

    def __init__(
        self,
        override: Optional[str] = None,
        resolv_conf: str = DEFAULT_RESOLV_CONF,
    ) -> None:
        servers: List[str] = []
        if override is not None and str(override).strip():
            candidate = str(override).strip()
            try:
                ipaddress.ip_address(candidate)
            except ValueError as exc:
                raise ConfigError(
                    f"nameserver override {candidate!r} is not an IP address"
                ) from exc
            servers.append(candidate)

        for server in parse_resolv_conf_nameservers(resolv_conf):
            if server not in servers:
                servers.append(server)

        if not servers:
            raise ConfigError(
                f"Not found any name server (no override and none in {resolv_conf})"
            )

        for server in servers:
            logger.info("init name server: %s", server)
        self._servers = servers

    @classmethod
    def from_environ(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        env_var: str = DEFAULT_NAMESERVER_ENV,
        resolv_conf: str = DEFAULT_RESOLV_CONF,
    ) -> "NameServerResolver":
        """Brief: Build a resolver whose override comes from an environment variable.

        Inputs:
          - environ: Mapping to read from (defaults to os.environ).
          - env_var: Name of the override variable.
          - resolv_conf: Path of the system resolver configuration.

        Outputs:
          - NameServerResolver instance.
        """

        env = os.environ if environ is None else environ
        return cls(env.get(env_var), resolv_conf=resolv_conf)

    @property
    def nameservers(self) -> List[str]:
        return list(self._servers)

    def primary(self) -> str:
        """Brief: Return the first configured nameserver."""

        return self._servers[0]
