"""
Structured logging configuration for the wallet core.

Supports two output formats:
  - **human** – coloured, single-line, readable; structured fields are
    appended as ``key=value``
  - **json**  – newline-delimited JSON for log aggregators; structured
    fields become top-level keys

Structured fields are passed through ``extra=`` (see ``FIELDS``).  A wallet
can be given a :func:`wallet_logger` so every record it emits carries the
wallet's fingerprint.

Usage:
    from hdwallet_core.logging_config import setup_logging
    setup_logging(level="DEBUG", fmt="json", log_file="wallet.log")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, MutableMapping, Optional

if TYPE_CHECKING:
    from hdwallet_core.config import LoggingConfig

LOGGER_NAME = "hdwallet_core"

# ``extra`` keys rendered by both formatters.
FIELDS = ("wallet", "network", "address_hex", "index", "tx_hash", "count")


def _fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: getattr(record, k) for k in FIELDS if hasattr(record, k)}


class _JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        log_obj.update(_fields(record))
        if record.exc_info and record.exc_info[1]:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


class _HumanFormatter(logging.Formatter):
    """Coloured, concise single-line format."""

    COLOURS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        colour = self.COLOURS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = (
            f"{colour}{ts} [{record.levelname:<7}]{self.RESET} "
            f"{record.name}: {record.getMessage()}"
        )
        fields = _fields(record)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


class WalletLoggerAdapter(logging.LoggerAdapter):
    """Adds the adapter's fields to every record, keeping per-call ``extra``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs


def wallet_logger(public_hash: str, network: str = "mainnet",
                  name: str = f"{LOGGER_NAME}.wallet") -> WalletLoggerAdapter:
    """Logger for one wallet, tagged with a short public-hash fingerprint."""
    return WalletLoggerAdapter(
        logging.getLogger(name),
        {"wallet": public_hash[:16], "network": network},
    )


def setup_logging(
    level: str = "INFO",
    fmt: str = "human",
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the ``hdwallet_core`` logger hierarchy.

    Parameters
    ----------
    level : str
        One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
    fmt : str
        ``"human"`` for coloured single-line output, ``"json"`` for
        newline-delimited JSON.
    log_file : str, optional
        If provided, logs are *also* written to this file (always in JSON
        format for machine parsing).
    """
    if fmt not in ("human", "json"):
        raise ValueError(f"Unknown log format: {fmt!r}")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_JSONFormatter() if fmt == "json" else _HumanFormatter())
    logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path))
        fh.setFormatter(_JSONFormatter())
        logger.addHandler(fh)

    return logger


def setup_logging_from_config(cfg: LoggingConfig) -> logging.Logger:
    return setup_logging(level=cfg.level, fmt=cfg.format, log_file=cfg.file)
