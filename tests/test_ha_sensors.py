import json

import pytest

from lxpbridge.config import HomeAssistant, Inverter, Mqtt
from lxpbridge.ha_sensors import (
    Register,
    availability,
    device,
    discovery_topic,
    sensor_messages,
    should_include_sensor,
)

GENERATOR_KEYS = {"v_gen", "f_gen", "p_gen", "e_gen_day", "e_gen_all"}
THIRD_STRING_KEYS = {"v_pv_3", "p_pv_3", "e_pv_day_3", "e_pv_all_3"}


def make_inverter(**overrides):
    values = dict(host="localhost", port=8000, serial="SERIAL0001", datalog="DATALOG001")
    values.update(overrides)
    return Inverter(**values)


def payloads(inverter, mqtt=None):
    mqtt = mqtt or Mqtt(host="localhost")
    return {
        json.loads(m.payload)["unique_id"].removeprefix(f"lxp_{inverter.datalog}_"): m
        for m in sensor_messages(inverter, mqtt)
    }


def test_register_lookup_by_value():
    assert Register(21) is Register.Register21
    assert Register.ChargePowerPercentCmd.name == "ChargePowerPercentCmd"


def test_discovery_topic_replaces_slash():
    topic = discovery_topic("homeassistant", "text", "DATALOG001", "ac_charge/1")
    assert topic == "homeassistant/text/lxp_DATALOG001/ac_charge_1/config"


def test_availability_uses_namespace():
    assert availability(Mqtt(host="localhost", namespace="lxp")) == {"topic": "lxp/LWT"}


def test_device_without_model():
    result = device(make_inverter())
    assert result == {
        "manufacturer": "LuxPower/EG4",
        "name": "lxp_DATALOG001",
        "identifiers": ["lxp_DATALOG001"],
    }


@pytest.mark.parametrize(
    "model, expected",
    [("18kpv", "EG4 18kPV"), ("18kPV", "EG4 18kPV"), ("6000xp", "EG4 6000XP"), ("12kPV", "EG4 12kPV")],
)
def test_device_model_names(model, expected):
    assert device(make_inverter(model=model))["model"] == expected


def test_device_name_uses_serial_when_configured():
    result = device(make_inverter(use_serial_in_entities=True))
    assert result["name"] == "lxp_SERIAL0001"
    assert result["identifiers"] == ["lxp_DATALOG001"]


def test_should_include_generator_only_for_18kpv():
    plain = make_inverter()
    big = make_inverter(model="18kpv")
    for key in GENERATOR_KEYS:
        assert should_include_sensor(plain, key) is False
        assert should_include_sensor(big, key) is True
    assert should_include_sensor(plain, "soc") is True


def test_should_exclude_third_string_on_6000xp():
    small = make_inverter(model="6000xp")
    for key in THIRD_STRING_KEYS:
        assert should_include_sensor(small, key) is False
        assert should_include_sensor(make_inverter(), key) is True


def test_sensor_messages_are_retained_with_sensor_topics():
    inverter = make_inverter()
    messages = sensor_messages(inverter, Mqtt(host="localhost"))
    assert all(m.retain for m in messages)
    assert all(m.topic.startswith("homeassistant/sensor/lxp_DATALOG001/") for m in messages)
    assert len({m.topic for m in messages}) == len(messages)


def test_sensor_messages_use_custom_prefix():
    mqtt = Mqtt(host="localhost", homeassistant=HomeAssistant(prefix="ha"))
    messages = sensor_messages(make_inverter(), mqtt)
    assert all(m.topic.startswith("ha/sensor/") for m in messages)


def test_model_filtering_difference_is_exactly_generator_keys():
    plain = set(payloads(make_inverter()))
    big = set(payloads(make_inverter(model="18kpv")))
    assert big - plain == GENERATOR_KEYS
    small = set(payloads(make_inverter(model="6000xp")))
    assert plain - small == THIRD_STRING_KEYS


def test_soc_payload():
    inverter = make_inverter()
    soc = json.loads(payloads(inverter)["soc"].payload)
    assert soc["unique_id"] == "lxp_DATALOG001_soc"
    assert soc["name"] == "State of Charge"
    assert soc["state_topic"] == "lxp/DATALOG001/inputs/all"
    assert soc["value_template"] == "{{ value_json.soc }}"
    assert soc["device_class"] == "battery"
    assert soc["unit_of_measurement"] == "%"
    assert soc["availability"] == {"topic": "lxp/LWT"}
    assert "icon" not in soc and "entity_category" not in soc


def test_status_payload_has_no_template():
    status = json.loads(payloads(make_inverter())["status"].payload)
    assert "value_template" not in status
    assert status["state_topic"] == "lxp/DATALOG001/input/0/parsed"


def test_fault_code_payload():
    fault = json.loads(payloads(make_inverter())["fault_code"].payload)
    assert fault["entity_category"] == "diagnostic"
    assert fault["icon"] == "mdi:alert"
    assert fault["state_topic"] == "lxp/DATALOG001/input/fault_code/parsed"


def test_apparent_power_overrides_power_profile():
    s_eps = json.loads(payloads(make_inverter())["s_eps"].payload)
    assert s_eps["device_class"] == "apparent_power"
    assert s_eps["unit_of_measurement"] == "VA"
    assert s_eps["state_class"] == "measurement"


def test_temperature_unit_kept_unescaped():
    message = payloads(make_inverter())["t_bat"]
    assert "°C" in message.payload
    assert json.loads(message.payload)["unit_of_measurement"] == "°C"


def test_payload_key_order_and_compact_form():
    message = payloads(make_inverter())["soc"]
    keys = list(json.loads(message.payload))
    assert keys[:3] == ["unique_id", "name", "state_topic"]
    assert keys[-2:] == ["device", "availability"]
    assert ", " not in message.payload.split('"name"')[0]
    assert message.topic == "homeassistant/sensor/lxp_DATALOG001/soc/config"