"""Constants for the Utility Cost Monitor integration."""

DOMAIN = "utility_cost_monitor"

# Channel types
CHANNEL_GAS = "gas"
CHANNEL_WATER = "water"
CHANNEL_ELECTRICITY = "electricity"
CHANNEL_CUSTOM = "custom"
CHANNEL_TYPES = [CHANNEL_GAS, CHANNEL_WATER, CHANNEL_ELECTRICITY, CHANNEL_CUSTOM]

# Configuration Keys - channel
CONF_NAME = "name"
CONF_CHANNEL_TYPE = "channel_type"
CONF_ACTIVE = "active"
CONF_SENSOR_ENTITY = "meter_sensor_entity_id"
CONF_UNIT = "billed_unit"

# Configuration Keys - meter correction
CONF_CALORIFIC_VALUE = "calorific_value"
CONF_STATE_NUMBER = "state_number"
CONF_OFFSET = "meter_offset"
CONF_INITIAL_READING = "initial_reading"

# Configuration Keys - tariff
CONF_PRICE = "price_per_unit"
CONF_HT_NT_ENABLED = "ht_nt_enabled"
CONF_HT_PRICE = "ht_price_per_unit"
CONF_NT_PRICE = "nt_price_per_unit"
CONF_HT_START = "ht_window_start"
CONF_HT_END = "ht_window_end"
CONF_BASIC_CHARGE = "basic_charge_monthly"
CONF_ANNUAL_FEE = "annual_fee"
CONF_PREPAYMENT = "prepayment_monthly"

# Configuration Keys - contract
CONF_CONTRACT_START = "contract_start"

# Configuration Keys - notifications
CONF_NOTIFY_SERVICE = "notify_service"
CONF_NOTIFY_BILLING = "notify_billing_reminder"
CONF_NOTIFY_BILLING_DAYS = "notify_billing_days"
CONF_NOTIFY_CHANGE = "notify_change_reminder"
CONF_NOTIFY_CHANGE_DAYS = "notify_change_days"

# Defaults
DEFAULT_NAME = "Utility Cost Monitor"
DEFAULT_CALORIFIC_VALUE = 11.5
DEFAULT_STATE_NUMBER = 0.95
DEFAULT_HT_START = "06:00:00"
DEFAULT_HT_END = "22:00:00"
DEFAULT_NOTIFY_BILLING = True
DEFAULT_NOTIFY_BILLING_DAYS = 7
DEFAULT_NOTIFY_CHANGE = False
DEFAULT_NOTIFY_CHANGE_DAYS = 60

# Units
UNIT_KWH = "kWh"
UNIT_M3 = "m³"
CURRENCY = "EUR"

DEFAULT_UNITS = {
    CHANNEL_GAS: UNIT_KWH,
    CHANNEL_WATER: UNIT_M3,
    CHANNEL_ELECTRICITY: UNIT_KWH,
    CHANNEL_CUSTOM: UNIT_KWH,
}

# Rounding
CONSUMPTION_DECIMALS = 3
MONEY_DECIMALS = 2
PRICE_DECIMALS = 4

# Tariff labels
TARIFF_HT = "HT"
TARIFF_NT = "NT"
TARIFF_STANDARD = "Standard"

# Storage
STORAGE_KEY = f"{DOMAIN}.channel"
STORAGE_VERSION = 1

# Scheduler
SCAN_INTERVAL_SECONDS = 60

# Dispatcher signal (formatted with entry id)
SIGNAL_UPDATE = f"{DOMAIN}_update_{{}}"

# Services
SERVICE_CLOSE_PERIOD = "close_billing_period"
SERVICE_SET_END_READING = "set_end_reading"
SERVICE_SET_ADJUSTMENT = "set_adjustment"
SERVICE_CLEAR_ADJUSTMENT = "clear_adjustment"
SERVICE_RECALCULATE = "recalculate_costs"
SERVICE_EXPORT_HISTORY = "export_history"

ATTR_CONFIG_ENTRY_ID = "config_entry_id"
ATTR_READING = "reading"
ATTR_VALUE = "value"
ATTR_NOTE = "note"
ATTR_FORMAT = "format"

# Notify retry
NOTIFY_MAX_RETRIES = 3
NOTIFY_RETRY_DELAY_SECONDS = 1.0
NOTIFY_TIMEOUT_SECONDS = 10.0
