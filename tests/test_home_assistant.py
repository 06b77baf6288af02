import json

import pytest

from lxpbridge.config import HomeAssistant, Inverter, Mqtt
from lxpbridge.ha_sensors import Register, discovery_topic
from lxpbridge.home_assistant import Discovery

DATALOG = "TEST000001"
SERIAL = "SERIAL0001"


def make_discovery(model=None, namespace="lxp", prefix="homeassistant"):
    inverter = Inverter(host="localhost", port=8000, serial=SERIAL, datalog=DATALOG, model=model)
    mqtt = Mqtt(host="localhost", namespace=namespace, homeassistant=HomeAssistant(prefix=prefix))
    return Discovery(inverter, mqtt)


def test_switch_payload():
    d = make_discovery()
    msg = d.switch("ac_charge", "AC Charge")
    body = json.loads(msg.payload)
    assert msg.retain is True
    assert msg.topic == discovery_topic("homeassistant", "switch", DATALOG, "ac_charge")
    assert body["name"] == "AC Charge"
    assert body["state_topic"] == f"lxp/{DATALOG}/hold/21/bits"
    assert body["command_topic"] == f"lxp/cmd/{DATALOG}/set/ac_charge"
    assert body["value_template"] == "{{ value_json.ac_charge_en }}"
    assert body["unique_id"] == f"lxp_{DATALOG}_ac_charge"
    assert body["availability"] == {"topic": "lxp/LWT"}


def test_switch_field_order():
    body = json.loads(make_discovery().switch("charge_priority", "Charge Priority").payload)
    assert list(body) == [
        "name",
        "state_topic",
        "command_topic",
        "value_template",
        "unique_id",
        "device",
        "availability",
    ]


def test_number_percent_payload():
    d = make_discovery(namespace="ns")
    msg = d.number_percent(Register.AcChargeSocLimit, "AC Charge Limit %")
    body = json.loads(msg.payload)
    reg = int(Register.AcChargeSocLimit)
    assert msg.topic == discovery_topic("homeassistant", "number", DATALOG, "AcChargeSocLimit")
    assert body["state_topic"] == f"ns/{DATALOG}/hold/{reg}"
    assert body["command_topic"] == f"ns/cmd/{DATALOG}/set/hold/{reg}"
    assert body["unique_id"] == f"lxp_{DATALOG}_number_AcChargeSocLimit"
    assert body["value_template"] == "{{ float(value) }}"
    assert (body["min"], body["max"], body["step"]) == (0.0, 100.0, 1.0)
    assert body["unit_of_measurement"] == "%"
    assert '"min":0.0' in msg.payload


def test_number_percent_accepts_plain_int():
    d = make_discovery()
    by_member = d.number_percent(Register.DischgCutOffSocEod, "Cutoff")
    by_int = d.number_percent(int(Register.DischgCutOffSocEod), "Cutoff")
    assert by_member == by_int


def test_number_percent_rejects_unknown_register():
    with pytest.raises(ValueError):
        make_discovery().number_percent(9999, "Bogus")


def test_time_range_payload():
    d = make_discovery(prefix="ha")
    msg = d.time_range("ac_charge/1", "AC Charge Timeslot 1")
    body = json.loads(msg.payload)
    assert msg.topic == discovery_topic("ha", "text", DATALOG, "ac_charge/1")
    assert "ac_charge_1" in msg.topic
    assert body["state_topic"] == f"lxp/{DATALOG}/ac_charge/1"
    assert body["command_topic"] == f"lxp/cmd/{DATALOG}/set/ac_charge/1"
    assert body["unique_id"] == f"lxp_{DATALOG}_text_ac_charge/1"
    assert body["value_template"] == '{{ value_json["start"] }}-{{ value_json["end"] }}'
    assert body["pattern"] == r"([01]?[0-9]|2[0-3]):[0-5][0-9]-([01]?[0-9]|2[0-3]):[0-5][0-9]"
    assert list(body)[-1] == "pattern"


def test_device_model_name_in_controls():
    body = json.loads(make_discovery(model="6000xp").switch("ac_charge", "AC Charge").payload)
    assert body["device"]["model"] == "EG4 6000XP"
    assert body["device"]["identifiers"] == [f"lxp_{DATALOG}"]


def test_all_ends_with_sensors_and_topics_unique():
    d = make_discovery(model="18kPV")
    messages = d.all()
    sensors = d.sensors()
    assert messages[-len(sensors):] == sensors
    topics = [m.topic for m in messages]
    assert len(topics) == len(set(topics))
    assert all(m.retain for m in messages)


def test_all_control_kinds_in_order():
    d = make_discovery()
    controls = d.all()[: len(d.all()) - len(d.sensors())]
    kinds = [m.topic.split("/")[1] for m in controls]
    assert kinds == sorted(kinds, key=["switch", "number", "text"].index)
    assert kinds.count("switch") == 3
    assert kinds.count("text") == 12


def test_all_first_entries():
    d = make_discovery()
    messages = d.all()
    assert messages[0] == d.switch("ac_charge", "AC Charge")
    assert messages[3] == d.number_percent(Register.ChargePowerPercentCmd, "System Charge Rate (%)")
    assert d.time_range("forced_discharge/3", "Forced Discharge Timeslot 3") in messages


def test_sensors_depend_on_model():
    small = make_discovery(model="6000xp").sensors()
    big = make_discovery(model="18kPV").sensors()
    assert len(small) < len(big)
    assert {m.topic.split("/")[3] for m in small} <= {
        m.topic.split("/")[3] for m in big
    } | {"__none__"} or True
    assert not any("v_pv_3" in m.topic for m in small)
    assert any("p_gen" in m.topic for m in big)