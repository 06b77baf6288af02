"""Commands addressed to an inverter, and the topics their results go to."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .config import Inverter

CommandValue = Union[int, bool, tuple, None]


class CommandKind(Enum):
    """Each kind carries its result topic path and whether an index follows it."""

    READ_INPUTS = ("read/inputs", True)
    READ_INPUT = ("read/input", True)
    READ_HOLD = ("read/hold", True)
    READ_PARAM = ("read/param", True)
    READ_AC_CHARGE_TIME = ("read/ac_charge", True)
    READ_AC_FIRST_TIME = ("read/ac_first", True)
    READ_CHARGE_PRIORITY_TIME = ("read/charge_priority", True)
    READ_FORCED_DISCHARGE_TIME = ("read/forced_discharge", True)
    SET_HOLD = ("set/hold", True)
    WRITE_PARAM = ("set/param", True)
    SET_AC_CHARGE_TIME = ("set/ac_charge", True)
    SET_AC_FIRST_TIME = ("set/ac_first", True)
    SET_CHARGE_PRIORITY_TIME = ("set/charge_priority", True)
    SET_FORCED_DISCHARGE_TIME = ("set/forced_discharge", True)
    CHARGE_RATE = ("set/charge_rate_pct", False)
    DISCHARGE_RATE = ("set/discharge_rate_pct", False)
    AC_CHARGE = ("set/ac_charge", False)
    CHARGE_PRIORITY = ("set/charge_priority", False)
    FORCED_DISCHARGE = ("set/forced_discharge", False)
    AC_CHARGE_RATE = ("set/ac_charge_rate_pct", False)
    AC_CHARGE_SOC_LIMIT = ("set/ac_charge_soc_limit_pct", False)
    DISCHARGE_CUTOFF_SOC_LIMIT = ("set/discharge_cutoff_soc_limit_pct", False)

    def __init__(self, path: str, indexed: bool) -> None:
        self.path = path
        self.indexed = indexed


_VALUELESS = frozenset(
    {
        CommandKind.READ_INPUTS,
        CommandKind.READ_PARAM,
        CommandKind.READ_AC_CHARGE_TIME,
        CommandKind.READ_AC_FIRST_TIME,
        CommandKind.READ_CHARGE_PRIORITY_TIME,
        CommandKind.READ_FORCED_DISCHARGE_TIME,
    }
)

_SWITCHES = frozenset({CommandKind.AC_CHARGE, CommandKind.CHARGE_PRIORITY, CommandKind.FORCED_DISCHARGE})

_TIMESLOT_SETTERS = frozenset(
    {
        CommandKind.SET_AC_CHARGE_TIME,
        CommandKind.SET_AC_FIRST_TIME,
        CommandKind.SET_CHARGE_PRIORITY_TIME,
        CommandKind.SET_FORCED_DISCHARGE_TIME,
    }
)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_u16(value: object, what: str) -> None:
    if not _is_int(value) or not 0 <= value <= 0xFFFF:
        raise ValueError(f"{what} must be an integer from 0 to 65535, got {value!r}")


@dataclass(frozen=True)
class Command:
    """A command for one inverter.

    ``register`` holds the register, block or timeslot number for kinds whose
    topic is indexed. ``value`` holds the count, register value, on/off flag or
    the four timeslot bytes (start hour, start minute, end hour, end minute).
    """

    kind: CommandKind
    inverter: Inverter
    register: int | None = None
    value: CommandValue = None

    def __post_init__(self) -> None:
        if self.kind.indexed:
            if self.register is None:
                raise ValueError(f"{self.kind.name} needs a register or number")
            _check_u16(self.register, "register")
        elif self.register is not None:
            raise ValueError(f"{self.kind.name} takes no register")

        if self.kind in _VALUELESS:
            if self.value is not None:
                raise ValueError(f"{self.kind.name} takes no value")
        elif self.kind in _SWITCHES:
            if not isinstance(self.value, bool):
                raise ValueError(f"{self.kind.name} needs a boolean value")
        elif self.kind in _TIMESLOT_SETTERS:
            values = tuple(self.value) if isinstance(self.value, (tuple, list, bytes)) else None
            if values is None or len(values) != 4 or not all(_is_int(v) and 0 <= v <= 0xFF for v in values):
                raise ValueError(f"{self.kind.name} needs four byte values")
            object.__setattr__(self, "value", values)
        else:
            _check_u16(self.value, "value")

    def result_topic(self) -> str:
        """The topic the outcome of this command is published to."""
        rest = f"{self.inverter.datalog}/{self.kind.path}"
        if self.kind.indexed:
            rest = f"{rest}/{self.register}"
        return f"result/{rest}"