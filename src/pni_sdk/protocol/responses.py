"""Request builders and response parsers for composite PNI payloads.

Single-value parameters go through the registry; the payloads here carry
several fields or a variable number of components.
"""

import logging
import struct

from pni_sdk.core.models import AcqParams, Data, ModInfo, UserCalScore
from pni_sdk.protocol.codec import BOOL, FLOAT32, FLOAT64, UINT8, AsciiType, FixedArrayType, decode_value
from pni_sdk.protocol.constants import FIR_FILTER_ID, FIR_TAP_COUNTS, UNSELECTED_DATA_ID, DataID
from pni_sdk.protocol.errors import MalformedPayload, TypeMismatch, UnknownEnumValue
from pni_sdk.protocol.registry import DATA_COMPONENT_TYPES

logger = logging.getLogger(__name__)

_MOD_INFO_TEXT = AsciiType(4)
_ACQ_PARAMS_FORMAT = ">??ff"  # acquisition_mode, flush_filter, reserved, sample_delay
_USER_CAL_SCORE_FORMAT = ">6f"  # mag, reserved, accel, distribution, tilt error, tilt range


def parse_mod_info(data: bytes) -> ModInfo:
    """Parse GET_MOD_INFO_RESP: two 4-character ASCII fields."""
    if len(data) != 8:
        raise MalformedPayload(f"GET_MOD_INFO_RESP must be 8 bytes, got {len(data)}")
    return ModInfo(
        device_type=decode_value(data[:4], _MOD_INFO_TEXT),
        revision=decode_value(data[4:], _MOD_INFO_TEXT),
    )


def build_data_components(components: list[DataID]) -> bytes:
    """Build SET_DATA_COMPONENTS payload: [count][id...]."""
    if not components:
        raise ValueError("At least one data component is required")
    if len(components) > 255:
        raise ValueError(f"Too many data components: {len(components)}")
    for component in components:
        if not isinstance(component, DataID):
            raise TypeMismatch(f"Expected DataID, got {component!r}")
    return bytes([len(components), *components])


def parse_data_response(data: bytes) -> Data:
    """
    Parse GET_DATA_RESP payload.

    Format:
    - data[0]: number of components
    - then per component: [id byte][value], value width depends on the id

    Raises:
        UnknownEnumValue: Component id not in DataID
        MalformedPayload: Truncated or oversized payload
    """
    if not data:
        raise MalformedPayload("GET_DATA_RESP is empty")

    count = data[0]
    offset = 1
    values: dict[str, float | bool] = {}

    for _ in range(count):
        if offset >= len(data):
            raise MalformedPayload(f"GET_DATA_RESP truncated: expected {count} components")

        raw_id = data[offset]
        offset += 1
        try:
            data_id = DataID(raw_id)
        except ValueError:
            if raw_id == UNSELECTED_DATA_ID:
                logger.error("Data id %d received: call set_data_components before get_data", raw_id)
            raise UnknownEnumValue(DataID.__name__, raw_id) from None

        field_type = DATA_COMPONENT_TYPES[data_id]
        value_bytes = data[offset : offset + field_type.size]
        values[data_id.name.lower()] = decode_value(value_bytes, field_type)
        offset += field_type.size

    if offset != len(data):
        raise MalformedPayload(f"GET_DATA_RESP has {len(data) - offset} trailing byte(s)")

    return Data(**values)


def build_acq_params(params: AcqParams) -> bytes:
    """Build SET_ACQ_PARAMS payload. The reserved float is always zero."""
    return struct.pack(_ACQ_PARAMS_FORMAT, params.acquisition_mode, params.flush_filter, 0.0, params.sample_delay)


def parse_acq_params(data: bytes) -> AcqParams:
    """Parse GET_ACQ_PARAMS_RESP payload, dropping the reserved float."""
    if len(data) != struct.calcsize(_ACQ_PARAMS_FORMAT):
        raise MalformedPayload(f"GET_ACQ_PARAMS_RESP must be 10 bytes, got {len(data)}")
    acquisition_mode = decode_value(data[0:1], BOOL)
    flush_filter = decode_value(data[1:2], BOOL)
    sample_delay = decode_value(data[6:10], FLOAT32)
    return AcqParams(acquisition_mode=acquisition_mode, flush_filter=flush_filter, sample_delay=sample_delay)


def parse_sample_count(data: bytes) -> int:
    """Parse USER_CAL_SAMPLE_COUNT payload (u32)."""
    if len(data) != 4:
        raise MalformedPayload(f"USER_CAL_SAMPLE_COUNT must be 4 bytes, got {len(data)}")
    return struct.unpack(">I", data)[0]


def parse_user_cal_score(data: bytes) -> UserCalScore:
    """Parse USER_CAL_SCORE payload (six floats, the second reserved)."""
    if len(data) != struct.calcsize(_USER_CAL_SCORE_FORMAT):
        raise MalformedPayload(f"USER_CAL_SCORE must be 24 bytes, got {len(data)}")
    mag, _reserved, accel, distribution, tilt_error, tilt_range = struct.unpack(_USER_CAL_SCORE_FORMAT, data)
    return UserCalScore(
        mag_cal_score=mag,
        accel_cal_score=accel,
        distribution_error=distribution,
        tilt_error=tilt_error,
        tilt_range=tilt_range,
    )


def build_fir_filters(taps: list[float]) -> bytes:
    """
    Build SET_FIR_FILTERS payload: [3][1][count][taps as f64...].

    Raises:
        TypeMismatch: Tap count not one of 0, 4, 8, 16, 32
    """
    if len(taps) not in FIR_TAP_COUNTS:
        raise TypeMismatch(f"FIR tap count must be one of {FIR_TAP_COUNTS}, got {len(taps)}")
    taps_type = FixedArrayType(FLOAT64, len(taps))
    return bytes([*FIR_FILTER_ID, len(taps)]) + taps_type.encode(list(taps))


def parse_fir_filters(data: bytes) -> list[float]:
    """Parse GET_FIR_FILTERS_RESP payload: [3][1][count][taps as f64...]."""
    if len(data) < 3:
        raise MalformedPayload(f"GET_FIR_FILTERS_RESP too short: {len(data)} bytes")
    if tuple(data[:2]) != FIR_FILTER_ID:
        raise MalformedPayload(f"Unexpected FIR filter id: {data[:2].hex()}")
    count = decode_value(data[2:3], UINT8)
    return decode_value(data[3:], FixedArrayType(FLOAT64, count))
