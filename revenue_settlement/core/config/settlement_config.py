"""Settlement configuration models.

The configuration is built once at process start (``SettlementConfig.from_env``)
and handed explicitly to every component that needs it. Nothing in the
package reads the environment on its own.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from revenue_settlement.core.domain.errors import ConfigError, UnknownFundError
from revenue_settlement.core.domain.types import BPS_DENOMINATOR

DEFAULT_PAYOUT_LOG_FILE = "./payout-log.jsonl"
DEFAULT_FUNDS_CONFIG_FILE = "./funds.json"
DEFAULT_REVENUE_DATA_DIR = "./br_rms_data"
DEFAULT_RISK_PROFILE_DIR = "./business_uploads"
DEFAULT_AUDIT_LOG_DIR = "./audits/logs"


class TermsScheduleConfig(BaseModel):
    """Basis-point schedule used by the default redemption terms calculator."""

    penalty_bps: int = Field(default=0, ge=0, le=BPS_DENOMINATOR)
    liquidity_fee_bps: int = Field(default=0, ge=0, le=BPS_DENOMINATOR)
    discount_bps: int = Field(default=0, ge=0, le=BPS_DENOMINATOR)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_total(self) -> TermsScheduleConfig:
        total = self.penalty_bps + self.liquidity_fee_bps + self.discount_bps
        if total > BPS_DENOMINATOR:
            raise ValueError("penalty + liquidity fee + discount must not exceed 10000 bps")
        return self


class FundConfig(BaseModel):
    """Static parameters of one tokenized-revenue fund."""

    key: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)

    # Absent address: the fund is settled administratively but not subscribed.
    contract_address: str | None = Field(default=None, min_length=1)

    total_supply: int = Field(..., ge=0)
    nav_window_months: int = Field(default=3, gt=0)

    terms: TermsScheduleConfig = Field(default_factory=TermsScheduleConfig)

    model_config = ConfigDict(extra="forbid", frozen=True)


class SettlementConfig(BaseModel):
    """Process-wide settlement configuration."""

    rpc_url: str = Field(..., min_length=1)
    payout_log_file: Path

    funds: dict[str, FundConfig] = Field(default_factory=dict)

    revenue_data_dir: Path = Path(DEFAULT_REVENUE_DATA_DIR)
    risk_profile_dir: Path = Path(DEFAULT_RISK_PROFILE_DIR)
    audit_log_dir: Path = Path(DEFAULT_AUDIT_LOG_DIR)

    payout_timeout_seconds: float = Field(default=30.0, gt=0)
    event_queue_maxsize: int = Field(default=1000, gt=0)

    pushgateway_url: str | None = None
    pushgateway_grouping_key: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_fund_keys(self) -> SettlementConfig:
        """Each fund must be registered under its own key."""
        for key, fund in self.funds.items():
            if fund.key != key:
                raise ValueError(f"fund registered as {key!r} declares key {fund.key!r}")
        if not str(self.payout_log_file).strip():
            raise ValueError("payout_log_file must be non-empty")
        return self

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def fund(self, fund_key: str) -> FundConfig:
        """Return the fund's configuration or raise UnknownFundError."""
        fund = self.funds.get(fund_key)
        if fund is None:
            raise UnknownFundError(fund_key, sorted(self.funds))
        return fund

    def subscribed_funds(self) -> list[FundConfig]:
        """Funds with a contract address, in key order."""
        return [
            self.funds[key]
            for key in sorted(self.funds)
            if self.funds[key].contract_address is not None
        ]

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> SettlementConfig:
        """Create a SettlementConfig from a JSON-compatible object."""
        try:
            return cls.model_validate(obj)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SettlementConfig:
        """Build the configuration from environment-style variables.

        Required: ``RPC_URL``. ``PAYOUT_LOG_FILE`` defaults to
        ``./payout-log.jsonl`` but may not be set to an empty value. Fund
        parameters come from the JSON file named by ``FUNDS_CONFIG_FILE``;
        ``REDEMPTION_FUND_<KEY>_ADDRESS`` attaches a contract address to a
        fund and may be individually absent.
        """
        env = os.environ if environ is None else environ

        rpc_url = env.get("RPC_URL", "").strip()
        if not rpc_url:
            raise ConfigError("RPC_URL is not set")

        payout_log_file = env.get("PAYOUT_LOG_FILE", DEFAULT_PAYOUT_LOG_FILE).strip()
        if not payout_log_file:
            raise ConfigError("PAYOUT_LOG_FILE must be non-empty")

        funds_path = Path(env.get("FUNDS_CONFIG_FILE", DEFAULT_FUNDS_CONFIG_FILE))
        raw_funds = _load_funds_file(funds_path)

        funds: dict[str, Any] = {}
        for key, raw in raw_funds.items():
            if not isinstance(raw, dict):
                raise ConfigError(f"fund {key!r} in {funds_path} must be a JSON object")
            entry = dict(raw)
            entry.setdefault("key", key)
            entry.setdefault("name", f"Fund{key}")
            address = env.get(f"REDEMPTION_FUND_{key}_ADDRESS", "").strip()
            if address:
                entry["contract_address"] = address
            funds[key] = entry

        obj: dict[str, Any] = {
            "rpc_url": rpc_url,
            "payout_log_file": payout_log_file,
            "funds": funds,
            "revenue_data_dir": env.get("REVENUE_DATA_DIR", DEFAULT_REVENUE_DATA_DIR),
            "risk_profile_dir": env.get("RISK_PROFILE_DIR", DEFAULT_RISK_PROFILE_DIR),
            "audit_log_dir": env.get("AUDIT_LOG_DIR", DEFAULT_AUDIT_LOG_DIR),
        }

        if env.get("PAYOUT_TIMEOUT_SECONDS"):
            obj["payout_timeout_seconds"] = env["PAYOUT_TIMEOUT_SECONDS"]
        if env.get("EVENT_QUEUE_MAXSIZE"):
            obj["event_queue_maxsize"] = env["EVENT_QUEUE_MAXSIZE"]
        if env.get("PROMETHEUS_PUSHGATEWAY_URL"):
            obj["pushgateway_url"] = env["PROMETHEUS_PUSHGATEWAY_URL"]
        if env.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON"):
            obj["pushgateway_grouping_key"] = _load_grouping_key(
                env["PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON"]
            )

        return cls.from_json_obj(obj)


def _load_funds_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"funds config file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"funds config file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"funds config file {path} must contain a JSON object")
    return data


def _load_grouping_key(raw: str) -> dict[str, str]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON is not valid JSON") from exc
    if not isinstance(data, dict):
        raise ConfigError("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON must be a JSON object")
    return {str(k): str(v) for k, v in data.items()}
