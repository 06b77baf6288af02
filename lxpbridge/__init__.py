"""Configuration, channels, commands, Home Assistant discovery, time slots and SQL storage for LuxPower/EG4 inverter data."""

__version__ = "0.1.0"