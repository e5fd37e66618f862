"""Typed per-channel configuration.

Built once from the config entry (options override data) so the rest of the
integration never does string-keyed lookups on the raw settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from ..const import (
    CHANNEL_GAS,
    CONF_ACTIVE,
    CONF_ANNUAL_FEE,
    CONF_BASIC_CHARGE,
    CONF_CALORIFIC_VALUE,
    CONF_CHANNEL_TYPE,
    CONF_CONTRACT_START,
    CONF_HT_END,
    CONF_HT_NT_ENABLED,
    CONF_HT_PRICE,
    CONF_HT_START,
    CONF_INITIAL_READING,
    CONF_NAME,
    CONF_NOTIFY_BILLING,
    CONF_NOTIFY_BILLING_DAYS,
    CONF_NOTIFY_CHANGE,
    CONF_NOTIFY_CHANGE_DAYS,
    CONF_NOTIFY_SERVICE,
    CONF_NT_PRICE,
    CONF_OFFSET,
    CONF_PREPAYMENT,
    CONF_PRICE,
    CONF_SENSOR_ENTITY,
    CONF_STATE_NUMBER,
    CONF_UNIT,
    DEFAULT_CALORIFIC_VALUE,
    DEFAULT_HT_END,
    DEFAULT_HT_START,
    DEFAULT_NOTIFY_BILLING,
    DEFAULT_NOTIFY_BILLING_DAYS,
    DEFAULT_NOTIFY_CHANGE,
    DEFAULT_NOTIFY_CHANGE_DAYS,
    DEFAULT_STATE_NUMBER,
    DEFAULT_UNITS,
    UNIT_KWH,
    UNIT_M3,
)
from ..domain.calculator import parse_local_date, parse_number, parse_time_of_day


@dataclass
class ChannelConfig:
    """Configuration of one utility channel."""

    channel_type: str
    name: str
    active: bool = True
    sensor_entity: str = ""
    billed_unit: str = UNIT_KWH

    # Meter correction
    calorific_value: float = DEFAULT_CALORIFIC_VALUE
    state_number: float = DEFAULT_STATE_NUMBER
    offset: float = 0.0
    initial_reading: float = 0.0

    # Tariff
    price: float = 0.0
    ht_nt_enabled: bool = False
    ht_price: float = 0.0
    nt_price: float = 0.0
    ht_start_minutes: int | None = None
    ht_end_minutes: int | None = None
    basic_charge_monthly: float = 0.0
    annual_fee: float = 0.0
    prepayment_monthly: float = 0.0

    # Contract
    contract_start_raw: str = ""
    contract_start: datetime | None = None

    # Notifications
    notify_service: str = ""
    notify_billing: bool = DEFAULT_NOTIFY_BILLING
    notify_billing_days: int = DEFAULT_NOTIFY_BILLING_DAYS
    notify_change: bool = DEFAULT_NOTIFY_CHANGE
    notify_change_days: int = DEFAULT_NOTIFY_CHANGE_DAYS

    @property
    def is_gas(self) -> bool:
        """Gas is metered in m³ and billed in kWh."""
        return self.channel_type == CHANNEL_GAS

    @property
    def tracks_volume(self) -> bool:
        """True when a separate m³ volume is tracked next to the billed unit."""
        return self.is_gas

    @property
    def volume_unit(self) -> str | None:
        """Unit of the physical meter when it differs from the billed unit."""
        return UNIT_M3 if self.tracks_volume else None

    @property
    def has_price(self) -> bool:
        """True when any consumption price is configured."""
        return self.price != 0 or self.ht_nt_enabled

    @property
    def ht_window(self) -> tuple[int | None, int | None]:
        """HT window in minutes since midnight, or (None, None)."""
        if not self.ht_nt_enabled:
            return None, None
        return self.ht_start_minutes, self.ht_end_minutes

    @property
    def gas_factor(self) -> float:
        """kWh per m³ (calorific value × state number)."""
        return self.calorific_value * self.state_number

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], options: Mapping[str, Any] | None = None) -> "ChannelConfig":
        """Build from config entry data and options."""
        options = options or {}

        def get(key: str, default: Any = None) -> Any:
            return options.get(key, data.get(key, default))

        channel_type = get(CONF_CHANNEL_TYPE, "custom")
        contract_raw = get(CONF_CONTRACT_START, "") or ""

        return cls(
            channel_type=channel_type,
            name=get(CONF_NAME, channel_type.title()),
            active=bool(get(CONF_ACTIVE, True)),
            sensor_entity=get(CONF_SENSOR_ENTITY, "") or "",
            billed_unit=get(CONF_UNIT, DEFAULT_UNITS.get(channel_type, UNIT_KWH)),
            calorific_value=parse_number(get(CONF_CALORIFIC_VALUE), DEFAULT_CALORIFIC_VALUE),
            state_number=parse_number(get(CONF_STATE_NUMBER), DEFAULT_STATE_NUMBER),
            offset=parse_number(get(CONF_OFFSET)),
            initial_reading=parse_number(get(CONF_INITIAL_READING)),
            price=parse_number(get(CONF_PRICE)),
            ht_nt_enabled=bool(get(CONF_HT_NT_ENABLED, False)),
            ht_price=parse_number(get(CONF_HT_PRICE)),
            nt_price=parse_number(get(CONF_NT_PRICE)),
            ht_start_minutes=parse_time_of_day(get(CONF_HT_START, DEFAULT_HT_START)),
            ht_end_minutes=parse_time_of_day(get(CONF_HT_END, DEFAULT_HT_END)),
            basic_charge_monthly=parse_number(get(CONF_BASIC_CHARGE)),
            annual_fee=parse_number(get(CONF_ANNUAL_FEE)),
            prepayment_monthly=parse_number(get(CONF_PREPAYMENT)),
            contract_start_raw=contract_raw,
            contract_start=parse_local_date(contract_raw),
            notify_service=get(CONF_NOTIFY_SERVICE, "") or "",
            notify_billing=bool(get(CONF_NOTIFY_BILLING, DEFAULT_NOTIFY_BILLING)),
            notify_billing_days=int(parse_number(get(CONF_NOTIFY_BILLING_DAYS), DEFAULT_NOTIFY_BILLING_DAYS)),
            notify_change=bool(get(CONF_NOTIFY_CHANGE, DEFAULT_NOTIFY_CHANGE)),
            notify_change_days=int(parse_number(get(CONF_NOTIFY_CHANGE_DAYS), DEFAULT_NOTIFY_CHANGE_DAYS)),
        )
