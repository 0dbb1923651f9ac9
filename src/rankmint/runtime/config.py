# src/rankmint/runtime/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from rankmint.issuance.constants import DEFAULT_FEE_DIVISOR, DEFAULT_MIN_FEE

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


def _as_int_map(v: Any) -> Dict[str, int]:
    if not isinstance(v, dict):
        return {}
    out: Dict[str, int] = {}
    for k, amt in v.items():
        key = str(k or "").strip()
        if key:
            out[key] = _as_int(amt, 0)
    return out


@dataclass(frozen=True)
class IssuanceConfig:
    mode: str  # "dev" | "testnet" | "prod"

    administrator: str
    team_address: str
    donation_address: str

    public_sale_active: bool
    fee_waived: bool
    fee_divisor: int
    min_fee: int

    api_host: str
    api_port: int
    log_level: str

    # Caller balances seed the dev value book; named oracle tables back
    # allowlist registration in every mode.
    initial_balances: Dict[str, int] = field(default_factory=dict)
    oracles: Dict[str, Dict[str, int]] = field(default_factory=dict)


_ALLOWED_MODES = {"dev", "testnet", "prod"}


def validate_config(cfg: IssuanceConfig) -> None:
    """Fail-fast validation for operator config.

    A config that leaves fee computation dividing by zero, or that routes
    payouts to an empty destination, must never boot.
    """
    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    for name, v in (
        ("administrator", cfg.administrator),
        ("team_address", cfg.team_address),
        ("donation_address", cfg.donation_address),
    ):
        if not isinstance(v, str) or not v.strip():
            raise ValueError(f"{name} must be a non-empty string")

    if not cfg.fee_waived and int(cfg.fee_divisor) <= 0:
        raise ValueError(f"fee_divisor must be > 0 unless fee_waived; got: {cfg.fee_divisor}")

    if int(cfg.min_fee) < 0:
        raise ValueError(f"min_fee must be >= 0; got: {cfg.min_fee}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    for addr, amt in cfg.initial_balances.items():
        if int(amt) < 0:
            raise ValueError(f"initial balance for {addr!r} must be >= 0")

    if mode == "prod" and cfg.initial_balances:
        # Caller balances are seeded only on the in-memory dev host. Oracle
        # tables stay allowed: allowlist registration resolves handles there.
        raise ValueError("initial_balances seed data is not allowed in prod mode")


def default_config() -> IssuanceConfig:
    return IssuanceConfig(
        # Production-safe defaults: sale closed, fee charged.
        mode="prod",
        administrator="admin",
        team_address="team",
        donation_address="donation",
        public_sale_active=False,
        fee_waived=False,
        fee_divisor=DEFAULT_FEE_DIVISOR,
        min_fee=DEFAULT_MIN_FEE,
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def read_config_file(path: str) -> IssuanceConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("issuance config must be a JSON object")

    d = default_config()

    oracles_raw = raw.get("oracles")
    oracles: Dict[str, Dict[str, int]] = {}
    if isinstance(oracles_raw, dict):
        for handle, table in oracles_raw.items():
            h = str(handle or "").strip()
            if h:
                oracles[h] = _as_int_map(table)

    cfg = IssuanceConfig(
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        administrator=_as_str(raw.get("administrator"), d.administrator),
        team_address=_as_str(raw.get("team_address"), d.team_address),
        donation_address=_as_str(raw.get("donation_address"), d.donation_address),
        public_sale_active=_as_bool(raw.get("public_sale_active"), d.public_sale_active),
        fee_waived=_as_bool(raw.get("fee_waived"), d.fee_waived),
        fee_divisor=_as_int(raw.get("fee_divisor"), d.fee_divisor),
        min_fee=_as_int(raw.get("min_fee"), d.min_fee),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level),
        initial_balances=_as_int_map(raw.get("initial_balances")),
        oracles=oracles,
    )

    validate_config(cfg)
    return cfg


def load_config(*, config_path: Optional[str] = None) -> IssuanceConfig:
    p = config_path or os.environ.get("RANKMINT_CONFIG_PATH")
    if p:
        return read_config_file(p)

    cfg = default_config()
    validate_config(cfg)
    return cfg
