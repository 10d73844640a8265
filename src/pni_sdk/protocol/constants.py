"""Protocol constants for PNI binary communication."""

from enum import IntEnum

# ============================================================================
# Frame Structure
# ============================================================================

START_MARKER = 0x02
LENGTH_SIZE = 2
CHECKSUM_SIZE = 2
MAX_FRAME_SIZE = 4096  # Largest frame a PNI module emits

# ============================================================================
# Command Codes
# ============================================================================


class Command(IntEnum):
    """Frame command identifiers (second field of every frame)."""

    GET_MOD_INFO = 0x01
    GET_MOD_INFO_RESP = 0x02
    SET_DATA_COMPONENTS = 0x03
    GET_DATA = 0x04
    GET_DATA_RESP = 0x05
    SET_CONFIG = 0x06
    GET_CONFIG = 0x07
    GET_CONFIG_RESP = 0x08
    SAVE = 0x09
    START_CAL = 0x0A
    STOP_CAL = 0x0B
    SET_FIR_FILTERS = 0x0C
    GET_FIR_FILTERS = 0x0D
    GET_FIR_FILTERS_RESP = 0x0E
    POWER_DOWN = 0x0F
    SAVE_DONE = 0x10
    USER_CAL_SAMPLE_COUNT = 0x11
    USER_CAL_SCORE = 0x12
    SET_CONFIG_DONE = 0x13
    SET_FIR_FILTERS_DONE = 0x14
    START_CONTINUOUS_MODE = 0x15
    STOP_CONTINUOUS_MODE = 0x16
    POWER_UP_DONE = 0x17
    SET_ACQ_PARAMS = 0x18
    GET_ACQ_PARAMS = 0x19
    SET_ACQ_PARAMS_DONE = 0x1A
    GET_ACQ_PARAMS_RESP = 0x1B
    POWER_DOWN_DONE = 0x1C
    FACTORY_MAG_COEFF = 0x1D
    FACTORY_MAG_COEFF_DONE = 0x1E
    TAKE_USER_CAL_SAMPLE = 0x1F
    FACTORY_ACCEL_COEFF = 0x24
    FACTORY_ACCEL_COEFF_DONE = 0x25
    COPY_COEFF_SET = 0x2B
    COPY_COEFF_SET_DONE = 0x2C
    SERIAL_NUMBER = 0x34
    SERIAL_NUMBER_RESP = 0x35


# ============================================================================
# Configuration parameters (GET_CONFIG / SET_CONFIG)
# ============================================================================


class ConfigID(IntEnum):
    """Configuration parameter identifiers."""

    DECLINATION = 1
    TRUE_NORTH = 2
    BIG_ENDIAN = 6
    MOUNTING_REF = 10
    USER_CAL_NUM_POINTS = 12
    USER_CAL_AUTO_SAMPLING = 13
    BAUD_RATE = 14
    MIL_OUT = 15
    HPR_DURING_CAL = 16
    MAG_COEFF_SET = 18
    ACCEL_COEFF_SET = 19


class MountingRef(IntEnum):
    """Reference orientation of the module."""

    STD_0 = 1
    X_UP_0 = 2
    Y_UP_0 = 3
    STD_90 = 4
    STD_180 = 5
    STD_270 = 6
    Z_DOWN_0 = 7
    X_UP_90 = 8
    X_UP_180 = 9
    X_UP_270 = 10
    Y_UP_90 = 11
    Y_UP_180 = 12
    Y_UP_270 = 13
    Z_DOWN_90 = 14
    Z_DOWN_180 = 15
    Z_DOWN_270 = 16


class Baud(IntEnum):
    """Baud rate index values accepted by BAUD_RATE."""

    B2400 = 4
    B3600 = 5
    B4800 = 6
    B7200 = 7
    B9600 = 8
    B14400 = 9
    B19200 = 10
    B28800 = 11
    B38400 = 12
    B57600 = 13
    B115200 = 14

    @property
    def rate(self) -> int:
        """Line speed in bits per second."""
        return int(self.name[1:])


# ============================================================================
# Data components (GET_DATA)
# ============================================================================


class DataID(IntEnum):
    """Measurement identifiers selectable with SET_DATA_COMPONENTS."""

    HEADING = 5
    TEMPERATURE = 7
    DISTORTION = 8
    CAL_STATUS = 9
    ACCEL_X = 21
    ACCEL_Y = 22
    ACCEL_Z = 23
    PITCH = 24
    ROLL = 25
    MAG_X = 27
    MAG_Y = 28
    MAG_Z = 29
    MAG_ACCURACY = 88


# Reported in GET_DATA_RESP when no components were selected beforehand
UNSELECTED_DATA_ID = 79

# ============================================================================
# Calibration
# ============================================================================


class CalOption(IntEnum):
    """User calibration modes for START_CAL."""

    FULL_RANGE = 10
    TWO_DIMENSIONAL = 20
    HARD_IRON_ONLY = 30
    LIMITED_TILT = 40
    ACCEL_ONLY = 100
    MAG_AND_ACCEL = 110


# GET/SET_FIR_FILTERS axis selector bytes (fixed by the protocol)
FIR_FILTER_ID = (3, 1)
FIR_TAP_COUNTS = (0, 4, 8, 16, 32)

# ============================================================================
# Communication Settings
# ============================================================================

DEFAULT_BAUD = 38400
READ_CHUNK_SIZE = 4096
REQUEST_TIMEOUT = 1.0  # Per-attempt response window (seconds)
RETRY_ATTEMPTS = 3  # Total sends per transaction
RETRY_DELAY = 0.05  # Pause between attempts (seconds)
MAX_CHECKSUM_FAILURES = 8  # Consecutive corrupt frames before desync
