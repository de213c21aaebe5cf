"""Configuration parsing for the dnscache service.

Brief:
  Reads the YAML config file and validates it with pydantic models. Every key
  is optional; an absent file yields the defaults.

Inputs:
  - YAML config paths or already-parsed mappings

Outputs:
  - ServiceConfig instances
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..codec import MAX_REPLY_RECORDS
from ..coordinator import DEFAULT_REFRESH_BEFORE_EXPIRY_S, DEFAULT_TIMEOUT_MS, DNS_PORT
from ..nameservers import DEFAULT_NAMESERVER_ENV, DEFAULT_RESOLV_CONF


class UpstreamConfig(BaseModel):
    """Brief: Upstream query settings.

    Inputs:
      - timeout_ms: Per-query timeout in milliseconds.
      - port: Upstream UDP port.
      - resolv_conf: System resolver configuration path.
      - nameserver_env: Environment variable holding an explicit nameserver.

    Outputs:
      - UpstreamConfig instance.
    """

    model_config = ConfigDict(extra="forbid")

    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, ge=1)
    port: int = Field(default=DNS_PORT, ge=1, le=65535)
    resolv_conf: str = DEFAULT_RESOLV_CONF
    nameserver_env: str = Field(default=DEFAULT_NAMESERVER_ENV, min_length=1)


class CacheConfig(BaseModel):
    """Brief: Record cache settings.

    Inputs:
      - max_records: Cap on records kept from a single reply.
      - refresh_before_expiry_s: Remaining-TTL threshold that triggers a
        background refresh on a cache hit (0 disables).

    Outputs:
      - CacheConfig instance.
    """

    model_config = ConfigDict(extra="forbid")

    max_records: int = Field(default=MAX_REPLY_RECORDS, ge=1)
    refresh_before_expiry_s: int = Field(default=DEFAULT_REFRESH_BEFORE_EXPIRY_S, ge=0)


class ServiceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: Dict[str, Any] = Field(default_factory=dict)


def build_config(cfg: Optional[Dict[str, Any]]) -> ServiceConfig:
    """Brief: Validate a parsed configuration mapping.

    Inputs:
      - cfg: Mapping loaded from YAML, or None for defaults.

    Outputs:
      - ServiceConfig.

    Raises:
      - ValueError: When the root is not a mapping or validation fails.
    """

    if cfg is None:
        cfg = {}
    if not isinstance(cfg, dict):
        raise ValueError("Configuration root must be a mapping")

    # YAML sections written as `cache:` with no body parse as None.
    normalized = {k: v for k, v in cfg.items() if v is not None}
    try:
        return ServiceConfig(**normalized)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


def parse_config_file(config_path: Optional[str]) -> ServiceConfig:
    """Brief: Read and validate a YAML config file.

    Inputs:
      - config_path: Path to the YAML configuration file, or None.

    Outputs:
      - ServiceConfig (defaults when config_path is None).

    Raises:
      - OSError: When the file cannot be read.
      - ValueError: When the YAML is not a mapping or fails validation.

    Example:
      >>> parse_config_file(None).upstream.timeout_ms
      1000
    """

    if not config_path:
        return ServiceConfig()

    with open(config_path, "r") as f:
        cfg = yaml.safe_load(f)
    return build_config(cfg)
