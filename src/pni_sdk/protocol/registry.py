"""Declarative parameter table for get/set commands.

Each device parameter is declared once as a Parameter. Its Get and Set
CommandDescriptors are derived from that single declaration, so request
encoding and response decoding always agree on the field type.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

from pni_sdk.protocol.codec import (
    BOOL,
    FLOAT32,
    UINT32,
    EnumType,
    FieldType,
    decode_value,
    encode_value,
)
from pni_sdk.protocol.constants import Baud, Command, ConfigID, DataID, MountingRef
from pni_sdk.protocol.errors import MalformedPayload


class Direction(str, Enum):
    GET = "get"
    SET = "set"


@dataclass(frozen=True)
class CommandDescriptor:
    """
    Everything needed to run one get or set of one parameter.

    Attributes:
        name: Parameter name
        direction: GET or SET
        field_type: Wire type of the value
        command: Request command id
        response: Expected response (GET) or acknowledgment (SET) command id
        request_prefix: Payload bytes sent ahead of the value (or alone, for GET)
        response_prefix: Payload bytes the response must start with (GET only)
        preamble: Optional write-only (command, payload) frame sent first
    """

    name: str
    direction: Direction
    field_type: FieldType
    command: int
    response: int
    request_prefix: bytes = b""
    response_prefix: bytes = b""
    preamble: tuple[int, bytes] | None = None

    def encode_request(self, value: Any = None) -> bytes:
        """Build the request payload. SET descriptors require a value."""
        if self.direction is Direction.GET:
            return self.request_prefix
        return self.request_prefix + encode_value(value, self.field_type)

    def decode_response(self, payload: bytes) -> Any:
        """Strip and check the response prefix, then decode the value."""
        if self.direction is Direction.SET:
            return None

        prefix = self.response_prefix
        if payload[: len(prefix)] != prefix:
            raise MalformedPayload(
                f"Response for {self.name} starts with {payload[: len(prefix)].hex() or 'nothing'}, "
                f"expected {prefix.hex()}"
            )
        return decode_value(payload[len(prefix) :], self.field_type)


@dataclass(frozen=True)
class Parameter:
    """Single declaration of a readable (and optionally writable) parameter."""

    name: str
    field_type: FieldType
    get_command: int
    get_response: int
    set_command: int | None = None
    set_ack: int | None = None
    request_prefix: bytes = b""
    response_prefix: bytes = b""
    preamble: tuple[int, bytes] | None = None

    @property
    def writable(self) -> bool:
        return self.set_command is not None and self.set_ack is not None

    def descriptor(self, direction: Direction) -> CommandDescriptor:
        """Derive the Get or Set command descriptor."""
        if Direction(direction) is Direction.GET:
            return CommandDescriptor(
                name=self.name,
                direction=Direction.GET,
                field_type=self.field_type,
                command=self.get_command,
                response=self.get_response,
                request_prefix=self.request_prefix,
                response_prefix=self.response_prefix,
                preamble=self.preamble,
            )

        if not self.writable:
            raise ValueError(f"Parameter {self.name} is read-only")
        return CommandDescriptor(
            name=self.name,
            direction=Direction.SET,
            field_type=self.field_type,
            command=self.set_command,
            response=self.set_ack,
            request_prefix=self.request_prefix,
        )


def config_parameter(name: str, config_id: ConfigID, field_type: FieldType) -> Parameter:
    """Declare a GET_CONFIG / SET_CONFIG parameter.

    Requests carry the config id ahead of the value. GET_CONFIG_RESP carries
    the value alone, directly after the command byte.
    """
    prefix = bytes([config_id])
    return Parameter(
        name=name,
        field_type=field_type,
        get_command=Command.GET_CONFIG,
        get_response=Command.GET_CONFIG_RESP,
        set_command=Command.SET_CONFIG,
        set_ack=Command.SET_CONFIG_DONE,
        request_prefix=prefix,
    )


def data_component(name: str, data_id: DataID, field_type: FieldType) -> Parameter:
    """Declare a read-only measurement fetched with GET_DATA.

    The component is selected with SET_DATA_COMPONENTS first; the response
    then reads [count=1][data_id][value].
    """
    selection = bytes([1, data_id])
    return Parameter(
        name=name,
        field_type=field_type,
        get_command=Command.GET_DATA,
        get_response=Command.GET_DATA_RESP,
        response_prefix=selection,
        preamble=(Command.SET_DATA_COMPONENTS, selection),
    )


class ParameterRegistry(Mapping):
    """Read-only name -> Parameter table, populated once."""

    def __init__(self, parameters: Iterable[Parameter]):
        table: dict[str, Parameter] = {}
        for parameter in parameters:
            if parameter.name in table:
                raise ValueError(f"Duplicate parameter: {parameter.name}")
            table[parameter.name] = parameter
        self._parameters = MappingProxyType(table)

    def __getitem__(self, name: str) -> Parameter:
        return self._parameters[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._parameters)

    def __len__(self) -> int:
        return len(self._parameters)

    def descriptor(self, name: str, direction: Direction) -> CommandDescriptor:
        return self[name].descriptor(direction)


# Wire type of each GET_DATA component
DATA_COMPONENT_TYPES: Mapping[DataID, FieldType] = MappingProxyType(
    {data_id: BOOL if data_id in (DataID.DISTORTION, DataID.CAL_STATUS) else FLOAT32 for data_id in DataID}
)

# Registry name of each configuration parameter
CONFIG_NAMES: Mapping[ConfigID, str] = MappingProxyType({config_id: config_id.name.lower() for config_id in ConfigID})

_CONFIG_TYPES = {
    ConfigID.DECLINATION: FLOAT32,
    ConfigID.TRUE_NORTH: BOOL,
    ConfigID.BIG_ENDIAN: BOOL,
    ConfigID.MOUNTING_REF: EnumType(MountingRef),
    ConfigID.USER_CAL_NUM_POINTS: UINT32,
    ConfigID.USER_CAL_AUTO_SAMPLING: BOOL,
    ConfigID.BAUD_RATE: EnumType(Baud),
    ConfigID.MIL_OUT: BOOL,
    ConfigID.HPR_DURING_CAL: BOOL,
    ConfigID.MAG_COEFF_SET: UINT32,
    ConfigID.ACCEL_COEFF_SET: UINT32,
}

PNI_PARAMETERS = ParameterRegistry(
    [config_parameter(CONFIG_NAMES[config_id], config_id, field_type) for config_id, field_type in _CONFIG_TYPES.items()]
    + [
        data_component(data_id.name.lower(), data_id, field_type)
        for data_id, field_type in DATA_COMPONENT_TYPES.items()
    ]
)
