"""Application settings read from a ``common.env`` file and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Union

_CONFIG_NAME = "common"


def _key(name: str) -> str:
    return field(default="", metadata={"key": name})


@dataclass
class Config:
    environment: str = _key("ENVIRONMENT")
    db_source: str = _key("DB_SOURCE")
    db_driver: str = _key("DB_DRIVER")
    kafka_broker: str = _key("KAFKA_BROKER")
    kafka_db_update_topic: str = _key("KAFKA_DB_UPDATE_TOPIC")
    kafka_execution_topic: str = _key("KAFKA_EXECUTION_TOPIC")
    kafka_consumer_group: str = _key("KAFKA_CONSUMER_GROUP")
    rmq_host: str = _key("RMQ_URL")
    rmq_queue_name: str = _key("RMQ_QUEUE_NAME")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] in "'\"" and value[-1] == value[0]:
        inner = value[1:-1]
        if value[0] == '"':
            inner = inner.replace("\\n", "\n").replace('\\"', '"').replace("\\\\", "\\")
        return inner
    comment = value.find(" #")
    if comment != -1:
        value = value[:comment]
    return value.rstrip()


def _parse_env(text: str) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"invalid config line {number}: {raw!r}")
        values[key.upper()] = _unquote(value.strip())
    return values


def _find_config(directory: Path) -> Path:
    for candidate in (directory / f"{_CONFIG_NAME}.env", directory / _CONFIG_NAME):
        if candidate.is_file():
            return candidate
    raise FileNotFoundError(f'config file "{_CONFIG_NAME}" not found in {directory}')


def load_config(path: Union[str, "os.PathLike[str]"]) -> Config:
    """Load ``common.env`` from ``path``; non-empty environment variables
    override keys that the file defines."""
    values = _parse_env(_find_config(Path(path)).read_text(encoding="utf-8"))
    for key in values:
        override = os.environ.get(key)
        if override:
            values[key] = override
    return Config(**{f.name: values.get(f.metadata["key"], "") for f in fields(Config)})