"""Home Assistant MQTT discovery messages for one inverter's controls and sensors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .channels import Message
from .config import Inverter, Mqtt
from .ha_sensors import (
    Register,
    availability,
    device,
    discovery_topic,
    sensor_messages,
    to_json,
)

_TIME_COMMAND_TEMPLATE = (
    '{% set parts = value.split("-") %}{"start":"{{ parts[0] }}", "end":"{{ parts[1] }}"}'
)
_TIME_VALUE_TEMPLATE = '{{ value_json["start"] }}-{{ value_json["end"] }}'
_TIME_PATTERN = r"([01]?[0-9]|2[0-3]):[0-5][0-9]-([01]?[0-9]|2[0-3]):[0-5][0-9]"

_SWITCHES = (
    ("ac_charge", "AC Charge"),
    ("charge_priority", "Charge Priority"),
    ("forced_discharge", "Forced Discharge"),
)

_NUMBERS = (
    (Register.ChargePowerPercentCmd, "System Charge Rate (%)"),
    (Register.DischgPowerPercentCmd, "System Discharge Rate (%)"),
    (Register.AcChargePowerCmd, "AC Charge Rate (%)"),
    (Register.AcChargeSocLimit, "AC Charge Limit %"),
    (Register.ChargePriorityPowerCmd, "Charge Priority Rate (%)"),
    (Register.ChargePrioritySocLimit, "Charge Priority Limit %"),
    (Register.ForcedDischgSocLimit, "Forced Discharge Limit %"),
    (Register.DischgCutOffSocEod, "Discharge Cutoff %"),
    (Register.EpsDischgCutoffSocEod, "Discharge Cutoff for EPS %"),
    (Register.AcChargeStartSocLimit, "Charge From AC Lower Limit %"),
    (Register.AcChargeEndSocLimit, "Charge From AC Upper Limit %"),
)

_TIMESLOTS = (
    ("ac_charge", "AC Charge Timeslot"),
    ("ac_first", "AC First Timeslot"),
    ("charge_priority", "Charge Priority Timeslot"),
    ("forced_discharge", "Forced Discharge Timeslot"),
)


@dataclass(frozen=True)
class Discovery:
    """Builds retained discovery messages for one inverter."""

    inverter: Inverter
    mqtt: Mqtt

    @property
    def _datalog(self) -> str:
        return self.inverter.datalog

    @property
    def _namespace(self) -> str:
        return self.mqtt.namespace

    def _message(self, kind: str, name: str, payload: dict[str, Any]) -> Message:
        return Message(
            topic=discovery_topic(self.mqtt.homeassistant.prefix, kind, self._datalog, name),
            payload=to_json(payload),
            retain=True,
        )

    def switch(self, name: str, label: str) -> Message:
        """An on/off control backed by a bit of holding register 21."""
        payload = {
            "name": label,
            "state_topic": f"{self._namespace}/{self._datalog}/hold/21/bits",
            "command_topic": f"{self._namespace}/cmd/{self._datalog}/set/{name}",
            "value_template": f"{{{{ value_json.{name}_en }}}}",
            "unique_id": f"lxp_{self._datalog}_{name}",
            "device": device(self.inverter),
            "availability": availability(self.mqtt),
        }
        return self._message("switch", name, payload)

    def number_percent(self, register: Register | int, label: str) -> Message:
        """A 0-100 % number control backed by one holding register."""
        register = Register(register)
        payload = {
            "name": label,
            "state_topic": f"{self._namespace}/{self._datalog}/hold/{int(register)}",
            "command_topic": f"{self._namespace}/cmd/{self._datalog}/set/hold/{int(register)}",
            "value_template": "{{ float(value) }}",
            "unique_id": f"lxp_{self._datalog}_number_{register.name}",
            "device": device(self.inverter),
            "availability": availability(self.mqtt),
            "min": 0.0,
            "max": 100.0,
            "step": 1.0,
            "unit_of_measurement": "%",
        }
        return self._message("number", register.name, payload)

    def time_range(self, name: str, label: str) -> Message:
        """A text control taking a time range such as ``00:00-23:59``."""
        payload = {
            "name": label,
            "state_topic": f"{self._namespace}/{self._datalog}/{name}",
            "command_topic": f"{self._namespace}/cmd/{self._datalog}/set/{name}",
            "command_template": _TIME_COMMAND_TEMPLATE,
            "value_template": _TIME_VALUE_TEMPLATE,
            "unique_id": f"lxp_{self._datalog}_text_{name}",
            "device": device(self.inverter),
            "availability": availability(self.mqtt),
            "pattern": _TIME_PATTERN,
        }
        return self._message("text", name, payload)

    def sensors(self) -> list[Message]:
        """Discovery messages for every sensor the inverter's model supports."""
        return sensor_messages(self.inverter, self.mqtt)

    def all(self) -> list[Message]:
        """Switches, numbers, timeslots, then sensors."""
        messages = [self.switch(name, label) for name, label in _SWITCHES]
        messages.extend(self.number_percent(register, label) for register, label in _NUMBERS)
        messages.extend(
            self.time_range(f"{name}/{num}", f"{label} {num}")
            for name, label in _TIMESLOTS
            for num in (1, 2, 3)
        )
        messages.extend(self.sensors())
        return messages