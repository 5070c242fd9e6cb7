from __future__ import annotations

import logging
import socket
from typing import Any, Dict

import yaml
from pydantic import BaseModel, Field, field_validator

"""
Config layer
- load_yaml(path) -> dict
- AppConfig (Pydantic v2) + validate_config(raw) -> AppConfig

Example:
  host: graphite.local
  port: 2003
  tags: true
  interval: 5
  name: desktop-01
"""

_DEFAULT_PORT = 2003  # carbon plaintext receiver
_DEFAULT_INTERVAL_SEC = 5.0


# Short machine name, without any DNS domain.
def _machine_name() -> str:
    return socket.gethostname().split(".", 1)[0]


# This function loads and parses YAML into a raw dictionary using yaml.safe_load.
def load_yaml(path: str) -> Dict[str, Any]:
    """
    Load and parse YAML into raw dict using yaml.safe_load.

    Raises:
        FileNotFoundError: if the file does not exist
        yaml.YAMLError: if YAML is malformed/unsafe
        ValueError: if the top-level document is not a mapping
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        # Treat empty file as empty mapping
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Top-level YAML must be a mapping/dict (file: {path})")
    return data


# Pydantic config model
class AppConfig(BaseModel):
    host: str
    port: int = _DEFAULT_PORT
    tags: bool = False
    interval: float = _DEFAULT_INTERVAL_SEC
    # Label used verbatim in metric paths and the host= tag
    name: str = Field(default_factory=_machine_name)
    log_level: str = "INFO"

    # --- Validators ---

    @field_validator("host")
    @classmethod
    def _host_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("host must be a non-empty hostname or IP address")
        return v

    #This validator checks if the port is a valid TCP port.
    @field_validator("port")
    @classmethod
    def _port_in_range(cls, v: int) -> int:
        if not (1 <= v <= 65535):
            raise ValueError("port must be 1..65535")
        return v

    @field_validator("interval")
    @classmethod
    def _interval_positive(cls, v: float) -> float:
        v = float(v)
        if v <= 0.0:
            raise ValueError("interval must be a positive number of seconds")
        return v

    #This validator keeps the label usable as a single metric path segment.
    @field_validator("name")
    @classmethod
    def _name_is_single_segment(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must be non-empty")
        if any(c in v for c in ". ;"):
            raise ValueError("name must not contain '.', ' ' or ';'")
        return v

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, v: str) -> str:
        v = v.strip().upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"unknown log level {v!r}")
        return v


#This function validates and normalizes a raw dictionary into an AppConfig object using Pydantic's model_validate.
def validate_config(raw: dict[str, Any]) -> AppConfig:
    """Validate and normalize raw dict into AppConfig."""
    return AppConfig.model_validate(raw)


__all__ = ["load_yaml", "AppConfig", "validate_config"]
