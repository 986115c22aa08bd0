"""
Bitfrost Client Constants

Bridge defaults, gateway routes and the logging settings read from ``.env``.

Logging settings resolve in order: process environment, then a ``.env``
file in the working directory, then ``LOGGER_DEFAULTS``. Each resolved value
keeps its built-in fallback reachable through ``.default()`` so the logger
can recover from a malformed override.
"""
import os

from dotenv import dotenv_values


# ── Bridge client ─────────────────────────────────────────────────────

DEFAULT_REGISTRY_POLL_INTERVAL_MS = 30_000
DEFAULT_CAN_TRANSFER_TIMEOUT_MS = 10_000    # fail-open once exceeded
DEFAULT_TRACK_POLL_INTERVAL_MS = 3_000      # fixed, no backoff

SUPPORTED_NETWORKS = ('mainnet', 'testnet')


# ── Query gateway (gRPC-gateway REST routes) ──────────────────────────

DEFAULT_QUERY_ENDPOINT = 'http://127.0.0.1:1317'
QUERY_REQUEST_TIMEOUT = 10.0  # seconds

BRIDGE_QUERY_PREFIX = '/int3face/bridge/v1beta1'
FEES_QUERY_PREFIX = '/int3face/fees/v1beta1'
TX_QUERY_PREFIX = '/cosmos/tx/v1beta1'


# ── Native messages ───────────────────────────────────────────────────

BRIDGE_PROTOBUF_PACKAGE = 'int3face.bridge.v1beta1'
MSG_OUTBOUND_TYPE_URL = f'/{BRIDGE_PROTOBUF_PACKAGE}.MsgOutboundTransfer'


# ── Logging ───────────────────────────────────────────────────────────

LOGGER_DEFAULTS = {
    'LOG_LEVEL': 'INFO',
    'LOG_FORMAT': '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT': '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING': 'true',
    'LOG_FILE_OUTPUT': 'false',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

_TRUE_WORDS = frozenset({'1', 'true', 'yes', 'on'})
_FALSE_WORDS = frozenset({'0', 'false', 'no', 'off', ''})


class ConfigString(str):
    """A string setting that remembers its fallback."""

    def __new__(cls, value: str, fallback: str):
        setting = super().__new__(cls, value)
        setting._fallback = fallback
        return setting

    def default(self) -> str:
        return self._fallback


class ConfigBool(int):
    """A boolean setting that remembers its fallback; compares like ``bool``."""

    def __new__(cls, value: bool, fallback: bool):
        setting = super().__new__(cls, bool(value))
        setting._fallback = fallback
        return setting

    def default(self) -> bool:
        return self._fallback

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__

    def __repr__(self):
        return repr(bool(self))

    __str__ = __repr__


def _to_bool(text: str, fallback: bool) -> bool:
    word = text.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    return fallback


_dotenv = dotenv_values('.env')


def _raw_setting(key: str) -> str:
    value = os.environ.get(key)
    if value is None:
        value = _dotenv.get(key)
    return LOGGER_DEFAULTS[key] if value is None else value


def _string_setting(key: str) -> ConfigString:
    return ConfigString(_raw_setting(key), LOGGER_DEFAULTS[key])


def _flag_setting(key: str) -> ConfigBool:
    fallback = _to_bool(LOGGER_DEFAULTS[key], False)
    return ConfigBool(_to_bool(_raw_setting(key), fallback), fallback)


LOG_LEVEL = _string_setting('LOG_LEVEL')
LOG_FORMAT = _string_setting('LOG_FORMAT')
LOG_DATE_FORMAT = _string_setting('LOG_DATE_FORMAT')
LOG_CONSOLE_HIGHLIGHTING = _flag_setting('LOG_CONSOLE_HIGHLIGHTING')
LOG_FILE_OUTPUT = _flag_setting('LOG_FILE_OUTPUT')
