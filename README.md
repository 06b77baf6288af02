# lxpbridge

Building blocks for a bridge between LuxPower / EG4 hybrid inverters and the
rest of a home-automation setup: configuration, in-process channels, MQTT
command topics, Home Assistant discovery messages, time-slot payloads and an
SQL writer for input readings.

## What it provides

- `lxpbridge.config`: load and validate the YAML configuration (`Config`,
  `Inverter`, `Mqtt`, `HomeAssistant`, `Influx`, `Database`, `Scheduler`).
  `Config.from_file(path)` and `Config.from_dict(data)` build it; helpers such
  as `enabled_inverters()`, `inverter_with_host(host)`,
  `enabled_inverter_with_datalog(datalog)`, `inverters_for_target(datalog)`
  and `enabled_databases()` select from it.
- `lxpbridge.channels`: asyncio broadcast channels (`Broadcast`,
  `Subscription`, `Channels`) and the `Message` type for MQTT messages.
  Each subscriber holds up to 2048 unread items; when full, the oldest is
  dropped and counted in `missed`. Sending with no subscribers, or on a closed
  channel, raises `ChannelClosed`.
- `lxpbridge.command`: commands for an inverter (`Command`, `CommandKind`)
  and `Command.result_topic()`, e.g. `result/<datalog>/set/hold/64`.
- `lxpbridge.ha_sensors` and `lxpbridge.home_assistant`: retained Home
  Assistant MQTT discovery messages for sensors, switches, percentage numbers
  and time-slot text fields (`Discovery.all()`). Generator sensors appear only
  for 18kPV models; third-PV-string sensors are left out for 2-string models
  (`6000xp`, `6kW`).
- `lxpbridge.database`: `DatabaseWriter`, which takes readings (mappings keyed
  by field name, with `time` in unix seconds) from the `to_database` channel
  and inserts them into an `inputs` table in SQLite, MySQL or PostgreSQL,
  retrying failed inserts. `database_type(url)`, `insert_query(kind)` and
  `bind_values(data)` are available on their own.
- `lxpbridge.timeslots`: charge / discharge time-slot registers (`Action`,
  `ActionKind`) and their `HH:MM` MQTT payloads (`format_timeslot`,
  `timeslot_message`).

## Configuration

```yaml
inverters:
  - host: 192.168.0.10
    port: 8000
    serial: TESTSERIAL
    datalog: TESTDATALG
    model: 6000xp
    publish_holdings_on_connect: true

mqtt:
  host: localhost
  namespace: lxp
  homeassistant:
    prefix: homeassistant

influx:
  enabled: false
  url: http://localhost:8086
  database: lxp

databases:
  - url: sqlite://lxp.db

loglevel: info
```

Defaults: MQTT port 1883, namespace `lxp`, Home Assistant discovery enabled
with prefix `homeassistant`, every section enabled unless `enabled: false`,
an inverter read timeout of 900 seconds, and log level `debug`.

Configuration problems (a missing or unreadable file, invalid YAML, a missing
required field or a value of the wrong type) raise
`lxpbridge.config.ConfigError`.

## Example

```python
from lxpbridge.config import Config
from lxpbridge.home_assistant import Discovery
from lxpbridge.timeslots import format_timeslot

config = Config.from_file("config.yaml")

for inverter in config.enabled_inverters():
    print(inverter.datalog, inverter.pv_string_count(), inverter.has_generator())
    for message in Discovery(inverter, config.mqtt).all():
        print(message.topic)

print(format_timeslot([1, 30, 5, 0]))  # {"start":"01:30","end":"05:00"}
```

## What it does not do

This package has no command-line program and runs no bridge on its own. It
does not connect to inverters or speak their protocol, contains no MQTT
client, and does not send data to InfluxDB; the `influx` section of the
configuration is parsed but nothing here acts on it. `DatabaseWriter` does
not create the `inputs` table: it must already exist.