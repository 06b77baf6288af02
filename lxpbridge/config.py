"""Bridge configuration, loaded from a YAML file."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

_REQUIRED = object()

_GENERATOR_MODELS = frozenset({"18kpv", "18kPV", "EG4-18kPV"})
_TWO_STRING_MODELS = frozenset({"6000xp", "6kW"})


class ConfigError(ValueError):
    """The configuration could not be read or is invalid."""


def _section(data: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigError(f"{name}: expected a mapping")
    return data


def _take(data: Mapping[str, Any], key: str, kind: type, section: str, default: Any = _REQUIRED) -> Any:
    if key not in data:
        if default is _REQUIRED:
            raise ConfigError(f"{section}: missing field `{key}`")
        return default
    value = data[key]
    if value is None and default is None:
        return None
    if kind is int:
        valid = isinstance(value, int) and not isinstance(value, bool)
    else:
        valid = isinstance(value, kind)
    if not valid:
        raise ConfigError(f"{section}: field `{key}` must be of type {kind.__name__}")
    return value


def _port(data: Mapping[str, Any], section: str, default: Any = _REQUIRED) -> int:
    port = _take(data, "port", int, section, default)
    if not 0 <= port <= 0xFFFF:
        raise ConfigError(f"{section}: port {port} out of range")
    return port


@dataclass
class Inverter:
    host: str
    port: int
    serial: str
    datalog: str
    enabled: bool = True
    model: str | None = None
    heartbeats: bool = False
    publish_holdings_on_connect: bool = False
    use_serial_in_entities: bool = False
    read_timeout: int = 900

    @classmethod
    def _from_mapping(cls, data: Any) -> Inverter:
        where = "inverter"
        data = _section(data, where)
        read_timeout = _take(data, "read_timeout", int, where, None)
        if read_timeout is not None and read_timeout < 0:
            raise ConfigError(f"{where}: read_timeout must not be negative")
        return cls(
            enabled=_take(data, "enabled", bool, where, True),
            host=_take(data, "host", str, where),
            port=_port(data, where),
            serial=_take(data, "serial", str, where),
            datalog=_take(data, "datalog", str, where),
            model=_take(data, "model", str, where, None),
            heartbeats=_take(data, "heartbeats", bool, where, None) is True,
            publish_holdings_on_connect=_take(data, "publish_holdings_on_connect", bool, where, None) is True,
            use_serial_in_entities=_take(data, "use_serial_in_entities", bool, where, None) is True,
            read_timeout=900 if read_timeout is None else read_timeout,
        )

    def is_model(self, model: str) -> bool:
        return self.model == model

    def has_generator(self) -> bool:
        """Only 18kPV-class models have a generator input."""
        return self.model in _GENERATOR_MODELS

    def pv_string_count(self) -> int:
        return 2 if self.model in _TWO_STRING_MODELS else 3


@dataclass
class HomeAssistant:
    enabled: bool = True
    prefix: str = "homeassistant"

    @classmethod
    def _from_mapping(cls, data: Any) -> HomeAssistant:
        where = "mqtt.homeassistant"
        data = _section(data, where)
        return cls(
            enabled=_take(data, "enabled", bool, where, True),
            prefix=_take(data, "prefix", str, where, "homeassistant"),
        )


@dataclass
class Mqtt:
    host: str
    port: int = 1883
    enabled: bool = True
    username: str | None = None
    password: str | None = None
    namespace: str = "lxp"
    homeassistant: HomeAssistant = field(default_factory=HomeAssistant)
    publish_individual_input: bool = False

    @classmethod
    def _from_mapping(cls, data: Any) -> Mqtt:
        where = "mqtt"
        data = _section(data, where)
        homeassistant = (
            HomeAssistant._from_mapping(data["homeassistant"]) if "homeassistant" in data else HomeAssistant()
        )
        return cls(
            enabled=_take(data, "enabled", bool, where, True),
            host=_take(data, "host", str, where),
            port=_port(data, where, 1883),
            username=_take(data, "username", str, where, None),
            password=_take(data, "password", str, where, None),
            namespace=_take(data, "namespace", str, where, "lxp"),
            homeassistant=homeassistant,
            publish_individual_input=_take(data, "publish_individual_input", bool, where, None) is True,
        )


@dataclass
class Influx:
    url: str
    database: str
    enabled: bool = True
    username: str | None = None
    password: str | None = None

    @classmethod
    def _from_mapping(cls, data: Any) -> Influx:
        where = "influx"
        data = _section(data, where)
        return cls(
            enabled=_take(data, "enabled", bool, where, True),
            url=_take(data, "url", str, where),
            username=_take(data, "username", str, where, None),
            password=_take(data, "password", str, where, None),
            database=_take(data, "database", str, where),
        )


@dataclass
class Database:
    url: str
    enabled: bool = True

    @classmethod
    def _from_mapping(cls, data: Any) -> Database:
        where = "database"
        data = _section(data, where)
        return cls(
            enabled=_take(data, "enabled", bool, where, True),
            url=_take(data, "url", str, where),
        )


@dataclass
class Scheduler:
    enabled: bool = True
    timesync_cron: str | None = None

    @classmethod
    def _from_mapping(cls, data: Any) -> Scheduler:
        where = "scheduler"
        data = _section(data, where)
        return cls(
            enabled=_take(data, "enabled", bool, where, True),
            timesync_cron=_take(data, "timesync_cron", str, where, None),
        )


@dataclass
class Config:
    inverters: list[Inverter]
    mqtt: Mqtt
    influx: Influx
    databases: list[Database] = field(default_factory=list)
    scheduler: Scheduler | None = None
    loglevel: str = "debug"

    @classmethod
    def from_dict(cls, data: Any) -> Config:
        """Build a configuration from parsed YAML data."""
        data = _section(data, "config")
        inverters = _take(data, "inverters", list, "config")
        databases = _take(data, "databases", list, "config", [])
        scheduler = data.get("scheduler")
        return cls(
            inverters=[Inverter._from_mapping(item) for item in inverters],
            mqtt=Mqtt._from_mapping(_take(data, "mqtt", Mapping, "config")),
            influx=Influx._from_mapping(_take(data, "influx", Mapping, "config")),
            databases=[Database._from_mapping(item) for item in databases],
            scheduler=None if scheduler is None else Scheduler._from_mapping(scheduler),
            loglevel=_take(data, "loglevel", str, "config", "debug"),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> Config:
        """Read and parse a YAML configuration file."""
        try:
            content = Path(path).read_text(encoding="utf-8")
        except OSError as err:
            raise ConfigError(f"error reading {path}: {err}") from err
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as err:
            raise ConfigError(f"error parsing {path}: {err}") from err
        return cls.from_dict(data)

    def enabled_inverters(self) -> list[Inverter]:
        return [inverter for inverter in self.inverters if inverter.enabled]

    def inverter_with_host(self, host: str) -> Inverter | None:
        return next((i for i in self.inverters if i.host == host), None)

    def enabled_inverter_with_datalog(self, datalog: str) -> Inverter | None:
        return next((i for i in self.enabled_inverters() if i.datalog == datalog), None)

    def inverters_for_target(self, datalog: str | None) -> list[Inverter]:
        """Enabled inverters a command addresses; ``None`` means all of them."""
        inverters = self.enabled_inverters()
        if datalog is None:
            return inverters
        return [i for i in inverters if i.datalog == datalog]

    def have_enabled_database(self) -> bool:
        return any(database.enabled for database in self.databases)

    def enabled_databases(self) -> list[Database]:
        return [database for database in self.databases if database.enabled]