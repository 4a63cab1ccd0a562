"""
Veilbook Constants

This module consolidates the global constants and environment configuration
used throughout the engine. Constants are organized by category for easy
reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

ENGINE_DEFAULTS = {
    'VEILBOOK_DEFAULT_COOLDOWN':       '0',
    'VEILBOOK_ORACLE_KEY':             '',
}

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# PROTOCOL CONSTANTS
# ==================================================================================
# Changing these alters state hashes and cleartext layouts; decryption
# authorities and the engine must agree on them.
ENGINE_VERSION = '1.0.0'

# Fixed width of a serialized opaque value (ciphertext handle)
CIPHERTEXT_WIDTH = 32

# Width of each big-endian unsigned field in a revealed cleartext payload
CLEARTEXT_FIELD_WIDTH = 32

# Number of fields in an aggregate reveal: ask volume, then bid volume
AGGREGATE_FIELD_COUNT = 2

# Address with no owner, rejected as an ownership target
ZERO_ADDRESS = '0x' + '00' * 20

# Initial batch id before any batch has been opened
INITIAL_BATCH_ID = 0

# Domain separators for reference collaborator hashing
DOMAIN_TRIVIAL = b'veilbook/trivial/v1'
DOMAIN_ENCRYPT = b'veilbook/encrypt/v1'
DOMAIN_ADD = b'veilbook/add/v1'
DOMAIN_LE = b'veilbook/le/v1'
DOMAIN_ORACLE_PROOF = b'veilbook/oracle-proof/v1'


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    def __hash__(self):
        return hash(bool(self))


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = ENGINE_DEFAULTS | LOGGER_DEFAULTS
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    # Case-insensitive membership check
    if s.casefold() in {"true", "false"}:
        # ast.literal_eval expects "True"/"False"
        return ast.literal_eval(s.title())
    return v

for key, default_raw in DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    # Parses only boolean-literals. Leaves other values untouched.
    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    # Wraps based on parsed value type.
    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        # Preserves the original raw string for ConfigString storage.
        namespace[key] = ConfigString(value_raw, default_val)


DEFAULT_COOLDOWN_SECONDS = int(namespace['VEILBOOK_DEFAULT_COOLDOWN'] or 0)
