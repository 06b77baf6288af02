"""Home Assistant MQTT discovery: devices, topics and sensor entities."""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any

from .channels import Message
from .config import Inverter, Mqtt

_MANUFACTURER = "LuxPower/EG4"

_MODEL_NAMES = {
    "18kpv": "EG4 18kPV",
    "18kPV": "EG4 18kPV",
    "6000xp": "EG4 6000XP",
}

_GENERATOR_KEYS = frozenset({"v_gen", "f_gen", "p_gen", "e_gen_day", "e_gen_all"})
_THIRD_STRING_KEYS = frozenset({"v_pv_3", "p_pv_3", "e_pv_day_3", "e_pv_all_3"})


class Register(IntEnum):
    """Holding registers exposed as controls; member names appear in entity ids."""

    Register21 = 21
    ChargePowerPercentCmd = 64
    DischgPowerPercentCmd = 65
    AcChargePowerCmd = 66
    AcChargeSocLimit = 67
    ChargePriorityPowerCmd = 74
    ChargePrioritySocLimit = 75
    ForcedDischgSocLimit = 83
    DischgCutOffSocEod = 105
    EpsDischgCutoffSocEod = 125
    AcChargeStartSocLimit = 160
    AcChargeEndSocLimit = 161


def to_json(payload: Any) -> str:
    """Serialise a discovery payload compactly, keeping non-ASCII text as is."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def device(inverter: Inverter) -> dict[str, Any]:
    """The Home Assistant device block describing an inverter."""
    name_id = inverter.serial if inverter.use_serial_in_entities else inverter.datalog
    result: dict[str, Any] = {
        "manufacturer": _MANUFACTURER,
        "name": f"lxp_{name_id}",
        "identifiers": [f"lxp_{inverter.datalog}"],
    }
    if inverter.model is not None:
        result["model"] = _MODEL_NAMES.get(inverter.model, f"EG4 {inverter.model}")
    return result


def availability(mqtt: Mqtt) -> dict[str, str]:
    """The availability block pointing at the bridge's last-will topic."""
    return {"topic": f"{mqtt.namespace}/LWT"}


def discovery_topic(prefix: str, kind: str, datalog: str, name: str) -> str:
    """The retained config topic for one entity; slashes in ``name`` become underscores."""
    return f"{prefix}/{kind}/lxp_{datalog}/{name.replace('/', '_')}/config"


def should_include_sensor(inverter: Inverter, key: str) -> bool:
    """Whether the inverter's model has the input a sensor reports on."""
    if key in _GENERATOR_KEYS:
        return inverter.has_generator()
    if key in _THIRD_STRING_KEYS:
        return inverter.pv_string_count() >= 3
    return True


@dataclass(frozen=True)
class _Sensor:
    key: str = ""
    name: str = ""
    topic_suffix: str = "inputs/all"
    templated: bool = True
    entity_category: str | None = None
    state_class: str | None = None
    device_class: str | None = None
    unit_of_measurement: str | None = None
    icon: str | None = None

    def payload(self, inverter: Inverter, mqtt: Mqtt) -> dict[str, Any]:
        body: dict[str, Any] = {
            "unique_id": f"lxp_{inverter.datalog}_{self.key}",
            "name": self.name,
            "state_topic": f"{mqtt.namespace}/{inverter.datalog}/{self.topic_suffix}",
        }
        optional = (
            ("entity_category", self.entity_category),
            ("state_class", self.state_class),
            ("device_class", self.device_class),
            ("value_template", f"{{{{ value_json.{self.key} }}}}" if self.templated else None),
            ("unit_of_measurement", self.unit_of_measurement),
            ("icon", self.icon),
        )
        body.update((name, value) for name, value in optional if value is not None)
        body["device"] = device(inverter)
        body["availability"] = availability(mqtt)
        return body


_BASE = _Sensor()
_VOLTAGE = replace(_BASE, device_class="voltage", state_class="measurement", unit_of_measurement="V")
_FREQUENCY = replace(_BASE, device_class="frequency", state_class="measurement", unit_of_measurement="Hz")
_POWER = replace(_BASE, device_class="power", state_class="measurement", unit_of_measurement="W")
_APPARENT = replace(_POWER, device_class="apparent_power", unit_of_measurement="VA")
_CURRENT = replace(_BASE, device_class="current", state_class="measurement", unit_of_measurement="A")
_ENERGY = replace(_BASE, device_class="energy", state_class="total_increasing", unit_of_measurement="kWh")
_TEMPERATURE = replace(_BASE, device_class="temperature", state_class="measurement", unit_of_measurement="°C")


def _group(template: _Sensor, *pairs: tuple[str, str]) -> list[_Sensor]:
    return [replace(template, key=key, name=name) for key, name in pairs]


SENSORS: tuple[_Sensor, ...] = (
    replace(_BASE, key="status", name="Status", topic_suffix="input/0/parsed", templated=False),
    replace(
        _BASE,
        key="soc",
        name="State of Charge",
        device_class="battery",
        state_class="measurement",
        unit_of_measurement="%",
    ),
    replace(
        _BASE,
        key="fault_code",
        name="Fault Code",
        entity_category="diagnostic",
        topic_suffix="input/fault_code/parsed",
        templated=False,
        icon="mdi:alert",
    ),
    replace(
        _BASE,
        key="warning_code",
        name="Warning Code",
        entity_category="diagnostic",
        topic_suffix="input/warning_code/parsed",
        templated=False,
        icon="mdi:alert-outline",
    ),
    *_group(
        _VOLTAGE,
        ("v_bat", "Battery Voltage"),
        ("v_ac_r", "Grid Voltage"),
        ("v_pv_1", "PV Voltage (String 1)"),
        ("v_pv_2", "PV Voltage (String 2)"),
        ("v_pv_3", "PV Voltage (String 3)"),
        ("v_eps_r", "EPS Voltage"),
        ("v_gen", "Generator Voltage"),
        ("v_eps_l1", "EPS Voltage L1"),
        ("v_eps_l2", "EPS Voltage L2"),
    ),
    *_group(
        _FREQUENCY,
        ("f_ac", "Grid Frequency"),
        ("f_eps", "EPS Frequency"),
        ("f_gen", "Generator Frequency"),
    ),
    *_group(
        _APPARENT,
        ("s_eps", "Apparent EPS Power"),
        ("s_eps_l1", "Apparent EPS Power L1"),
        ("s_eps_l2", "Apparent EPS Power L2"),
    ),
    *_group(
        _POWER,
        ("p_pv", "PV Power (Array)"),
        ("p_pv_1", "PV Power (String 1)"),
        ("p_pv_2", "PV Power (String 2)"),
        ("p_pv_3", "PV Power (String 3)"),
        ("p_battery", "Battery Power (discharge is negative)"),
        ("p_charge", "Battery Charge"),
        ("p_discharge", "Battery Discharge"),
        ("p_grid", "Grid Power (export is negative)"),
        ("p_to_user", "Power from Grid"),
        ("p_to_grid", "Power to Grid"),
        ("p_eps", "Active EPS Power"),
        ("p_inv", "Inverter Power"),
        ("p_rec", "AC Charge Power"),
        ("p_gen", "Generator Power"),
        ("p_eps_l1", "EPS Power L1"),
        ("p_eps_l2", "EPS Power L2"),
    ),
    *_group(
        _ENERGY,
        ("e_pv_all", "PV Generation (All time)"),
        ("e_pv_all_1", "PV Generation (All time) (String 1)"),
        ("e_pv_all_2", "PV Generation (All time) (String 2)"),
        ("e_pv_all_3", "PV Generation (All time) (String 3)"),
        ("e_pv_day", "PV Generation (Today))"),
        ("e_pv_day_1", "PV Generation (Today) (String 1)"),
        ("e_pv_day_2", "PV Generation (Today) (String 2)"),
        ("e_pv_day_3", "PV Generation (Today) (String 3)"),
        ("e_chg_all", "Battery Charge (All time)"),
        ("e_chg_day", "Battery Charge (Today)"),
        ("e_dischg_all", "Battery Discharge (All time)"),
        ("e_dischg_day", "Battery Discharge (Today)"),
        ("e_to_user_all", "Energy from Grid (All time)"),
        ("e_to_user_day", "Energy from Grid (Today)"),
        ("e_to_grid_all", "Energy to Grid (All time)"),
        ("e_to_grid_day", "Energy to Grid (Today)"),
        ("e_eps_all", "Energy from EPS (All time)"),
        ("e_eps_day", "Energy from EPS (Today)"),
        ("e_rec_all", "Energy of AC Charging (All time)"),
        ("e_rec_day", "Energy of AC Charging (Today)"),
        ("e_inv_all", "Energy of Inverter (All time)"),
        ("e_inv_day", "Energy of Inverter (Today)"),
        ("e_gen_all", "Energy of Generator (All time)"),
        ("e_gen_day", "Energy of Generator (Today)"),
        ("e_eps_l1_all", "Energy of EPS L1 (All time)"),
        ("e_eps_l1_day", "Energy of EPS L1  (Today)"),
        ("e_eps_l2_all", "Energy of EPS L2 (All time)"),
        ("e_eps_l2_day", "Energy of EPS L2  (Today)"),
    ),
    *_group(
        _TEMPERATURE,
        ("t_inner", "Inverter Temperature"),
        ("t_rad_1", "Radiator 1 Temperature"),
        ("t_rad_2", "Radiator 2 Temperature"),
        ("t_bat", "Battery Temperature"),
    ),
    *_group(
        _CURRENT,
        ("max_chg_curr", "Max Charge Current"),
        ("max_dischg_curr", "Max Discharge Current"),
    ),
    *_group(
        _VOLTAGE,
        ("min_cell_voltage", "Min Cell Voltage (BMS)"),
        ("max_cell_voltage", "Max Cell Voltage (BMS)"),
    ),
    *_group(
        _TEMPERATURE,
        ("min_cell_temp", "Min Cell Temperature (BMS)"),
        ("max_cell_temp", "Max Cell Temperature (BMS)"),
    ),
    replace(
        _BASE,
        key="runtime",
        name="Total Runtime",
        entity_category="diagnostic",
        device_class="duration",
        state_class="total_increasing",
        unit_of_measurement="s",
    ),
)


def sensor_messages(inverter: Inverter, mqtt: Mqtt) -> list[Message]:
    """Retained discovery messages for every sensor the inverter's model supports."""
    return [
        Message(
            topic=discovery_topic(mqtt.homeassistant.prefix, "sensor", inverter.datalog, sensor.key),
            payload=to_json(sensor.payload(inverter, mqtt)),
            retain=True,
        )
        for sensor in SENSORS
        if should_include_sensor(inverter, sensor.key)
    ]