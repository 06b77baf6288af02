"""Stores combined input readings in an SQL database."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

import sqlalchemy
from sqlalchemy.exc import SQLAlchemyError

from .channels import ChannelClosed, Channels
from .config import Database

log = logging.getLogger(__name__)

COLUMNS: tuple[str, ...] = (
    "status",
    "v_pv_1", "v_pv_2", "v_pv_3", "v_bat",
    "soc", "soh",
    "internal_fault",
    "p_pv", "p_pv_1", "p_pv_2", "p_pv_3",
    "p_battery", "p_charge", "p_discharge",
    "v_ac_r", "v_ac_s", "v_ac_t", "f_ac",
    "p_inv", "p_rec",
    "pf",
    "v_eps_r", "v_eps_s", "v_eps_t", "f_eps", "p_eps", "s_eps",
    "p_grid", "p_to_grid", "p_to_user",
    "e_pv_day", "e_pv_day_1", "e_pv_day_2", "e_pv_day_3",
    "e_inv_day", "e_rec_day", "e_chg_day", "e_dischg_day",
    "e_eps_day", "e_to_grid_day", "e_to_user_day",
    "v_bus_1", "v_bus_2",
    "e_pv_all", "e_pv_all_1", "e_pv_all_2", "e_pv_all_3",
    "e_inv_all", "e_rec_all", "e_chg_all", "e_dischg_all",
    "e_eps_all", "e_to_grid_all", "e_to_user_all",
    "fault_code", "warning_code",
    "t_inner", "t_rad_1", "t_rad_2", "t_bat",
    "runtime",
    "max_chg_curr", "max_dischg_curr", "charge_volt_ref", "dischg_cut_volt",
    "bat_status_0", "bat_status_1", "bat_status_2", "bat_status_3", "bat_status_4",
    "bat_status_5", "bat_status_6", "bat_status_7", "bat_status_8", "bat_status_9",
    "bat_status_inv",
    "bat_count", "bat_capacity", "bat_current", "bms_event_1", "bms_event_2",
    "max_cell_voltage", "min_cell_voltage", "max_cell_temp", "min_cell_temp",
    "bms_fw_update_state", "cycle_count", "vbat_inv",
    "datalog", "created_at",
)

_INTEGER_COLUMNS = frozenset(
    {
        "status", "soc", "soh", "internal_fault",
        "p_pv", "p_pv_1", "p_pv_2", "p_pv_3", "p_charge", "p_discharge",
        "p_inv", "p_rec", "p_eps", "s_eps", "p_to_grid", "p_to_user",
        "fault_code", "warning_code",
        "t_inner", "t_rad_1", "t_rad_2", "t_bat", "runtime",
        "bat_status_0", "bat_status_1", "bat_status_2", "bat_status_3", "bat_status_4",
        "bat_status_5", "bat_status_6", "bat_status_7", "bat_status_8", "bat_status_9",
        "bat_status_inv", "bat_count", "bat_capacity", "bms_event_1", "bms_event_2",
        "bms_fw_update_state", "cycle_count",
    }
)


class DatabaseType(Enum):
    """Supported databases, keyed by their URL scheme."""

    MYSQL = "mysql"
    POSTGRES = "postgres"
    SQLITE = "sqlite"

    @property
    def placeholder(self) -> str:
        """The positional parameter marker the database's driver expects."""
        return "?" if self is DatabaseType.SQLITE else "%s"


class _Signal(Enum):
    SHUTDOWN = "shutdown"


SHUTDOWN = _Signal.SHUTDOWN
"""Sent on the database channel to make writers exit."""


def database_type(url: str) -> DatabaseType:
    """The kind of database a URL names; ValueError if unsupported."""
    scheme = url.split(":", 1)[0]
    try:
        return DatabaseType(scheme)
    except ValueError:
        raise ValueError(f"unsupported database {url}") from None


def insert_query(kind: DatabaseType) -> str:
    """The INSERT statement for one reading, with the driver's placeholders."""
    placeholders = ", ".join([kind.placeholder] * len(COLUMNS))
    return f"INSERT INTO inputs ({', '.join(COLUMNS)}) VALUES ({placeholders})"


def bind_values(data: Mapping[str, Any]) -> tuple[Any, ...]:
    """Values for :func:`insert_query`, in column order.

    ``data`` holds a reading keyed by field name, with ``time`` in unix
    seconds stored as ``created_at``.
    """
    values: list[Any] = []
    for column in COLUMNS:
        key = "time" if column == "created_at" else column
        try:
            value = data[key]
        except KeyError:
            raise ValueError(f"missing field `{key}`") from None
        if column == "datalog":
            value = str(value)
        elif column == "created_at" or column in _INTEGER_COLUMNS:
            value = int(value)
        values.append(value)
    return tuple(values)


def _engine_url(url: str, kind: DatabaseType) -> str:
    if kind is DatabaseType.SQLITE:
        rest = url[len("sqlite:"):]
        if rest.startswith("//"):
            rest = rest[2:]
        rest = rest.split("?", 1)[0]
        if rest in ("", ":memory:"):
            return "sqlite://"
        return f"sqlite:///{rest}"
    if kind is DatabaseType.POSTGRES:
        return "postgresql" + url[len("postgres"):]
    return url


class DatabaseWriter:
    """Takes readings from the database channel and inserts them."""

    def __init__(self, config: Database, channels: Channels, *, retry_delay: float = 10.0) -> None:
        self.config = config
        self.channels = channels
        self.retry_delay = retry_delay

    async def start(self) -> None:
        """Run until told to stop."""
        log.info("initializing database")

        kind = database_type(self.config.url)
        query = insert_query(kind)
        engine = sqlalchemy.create_engine(_engine_url(self.config.url, kind))
        try:
            with self.channels.to_database.subscribe() as receiver:
                log.info("database connected")
                while True:
                    item = await receiver.recv()
                    if item is SHUTDOWN:
                        break
                    await self._insert(engine, query, bind_values(item))
        finally:
            engine.dispose()

        log.info("database loop exiting")

    def stop(self) -> None:
        """Ask running writers to exit."""
        try:
            self.channels.to_database.send(SHUTDOWN)
        except ChannelClosed:
            pass

    async def _insert(self, engine: sqlalchemy.Engine, query: str, values: tuple[Any, ...]) -> None:
        while True:
            try:
                await asyncio.to_thread(self._execute, engine, query, values)
                return
            except SQLAlchemyError as err:
                log.error("INSERT failed: %r - retrying in %ss", err, self.retry_delay)
                await asyncio.sleep(self.retry_delay)

    @staticmethod
    def _execute(engine: sqlalchemy.Engine, query: str, values: tuple[Any, ...]) -> None:
        with engine.begin() as connection:
            connection.exec_driver_sql(query, values)