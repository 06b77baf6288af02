"""Timeslot holding registers: their addresses and the messages reporting them."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .channels import Message

SLOTS_PER_KIND = 3


class ActionKind(Enum):
    """A kind of timeslot; each carries its topic name and its first register."""

    AC_CHARGE = ("ac_charge", 68)
    AC_FIRST = ("ac_first", 152)
    CHARGE_PRIORITY = ("charge_priority", 76)
    FORCED_DISCHARGE = ("forced_discharge", 84)

    def __init__(self, topic: str, first_register: int) -> None:
        self.topic = topic
        self.first_register = first_register


@dataclass(frozen=True)
class Action:
    """One numbered timeslot (1 to 3) of a given kind."""

    kind: ActionKind
    num: int

    def register(self) -> int:
        """The first of the two holding registers that store this timeslot."""
        if isinstance(self.num, bool) or not isinstance(self.num, int) or not 1 <= self.num <= SLOTS_PER_KIND:
            raise ValueError("unsupported command")
        return self.kind.first_register + 2 * (self.num - 1)

    def reply_topic(self, datalog: str) -> str:
        """The topic, below the MQTT namespace, that reports this timeslot."""
        return f"{datalog}/{self.kind.topic}/{self.num}"


def _timeslot_bytes(values: Iterable[int]) -> tuple[int, int, int, int]:
    slot = tuple(values)
    if len(slot) != 4 or not all(
        isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 0xFF for v in slot
    ):
        raise ValueError(f"a timeslot needs four byte values, got {slot!r}")
    return slot  # type: ignore[return-value]


def format_timeslot(values: Iterable[int]) -> str:
    """JSON payload for start hour, start minute, end hour and end minute."""
    start_hour, start_minute, end_hour, end_minute = _timeslot_bytes(values)
    payload = {
        "start": f"{start_hour:02d}:{start_minute:02d}",
        "end": f"{end_hour:02d}:{end_minute:02d}",
    }
    return json.dumps(payload, separators=(",", ":"))


def timeslot_message(action: Action, datalog: str, values: Iterable[int]) -> Message:
    """The retained message reporting a timeslot's current setting."""
    return Message(
        topic=action.reply_topic(datalog),
        payload=format_timeslot(values),
        retain=True,
    )