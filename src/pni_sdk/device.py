"""Command facade for PNI compass and AHRS modules.

Each public method is one protocol exchange (or a short, channel-held
sequence of them) run through the TransactionEngine.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import replace
from typing import Any

from pni_sdk.core.config import Settings
from pni_sdk.core.models import AcqParams, Data, ModInfo, UserCalScore
from pni_sdk.protocol.codec import UINT8, UINT16, UINT32, EnumType, decode_value, encode_value
from pni_sdk.protocol.constants import (
    FIR_FILTER_ID,
    MAX_CHECKSUM_FAILURES,
    Baud,
    CalOption,
    Command,
    ConfigID,
    DataID,
    MountingRef,
)
from pni_sdk.protocol.errors import DeviceError, FrameError, TransactionTimeout
from pni_sdk.protocol.frames import Frame, FrameFormat, family_format
from pni_sdk.protocol.handler import TransactionConfig, TransactionEngine
from pni_sdk.protocol.registry import CONFIG_NAMES, PNI_PARAMETERS, Direction, ParameterRegistry
from pni_sdk.protocol.responses import (
    build_acq_params,
    build_data_components,
    build_fir_filters,
    parse_acq_params,
    parse_data_response,
    parse_fir_filters,
    parse_mod_info,
    parse_sample_count,
    parse_user_cal_score,
)
from pni_sdk.serial.channel import Channel
from pni_sdk.serial.connection import SerialConnection, Transport

logger = logging.getLogger(__name__)

_CAL_OPTION = EnumType(CalOption, width=4)


class Device:
    """
    One PNI module on one transport.

    Example:
        >>> with Device.connect() as device:  # doctest: +SKIP
        ...     device.set_data_components([DataID.HEADING])
        ...     device.get_data().heading
        231.5
    """

    def __init__(
        self,
        transport: Transport,
        frame_format: FrameFormat | None = None,
        registry: ParameterRegistry = PNI_PARAMETERS,
        config: TransactionConfig | None = None,
        max_checksum_failures: int = MAX_CHECKSUM_FAILURES,
    ):
        """
        Initialize the facade over an open transport.

        Args:
            transport: Open transport to the module
            frame_format: Frame layout (default: marked canonical layout)
            registry: Parameters reachable through read() and write()
            config: Default retry and timeout policy
            max_checksum_failures: Consecutive corrupt frames before ProtocolDesync
        """
        self.channel = Channel(transport, frame_format, max_checksum_failures)
        self.registry = registry
        self.engine = TransactionEngine(config)

    @classmethod
    def connect(cls, settings: Settings | None = None) -> "Device":
        """
        Open the serial port described by settings.

        Raises:
            TransportError: If the port cannot be opened
        """
        settings = settings or Settings()
        connection = SerialConnection(settings.serial_port, settings.serial_baud, settings.request_timeout)
        connection.connect()
        return cls(
            connection,
            family_format(settings.device_family),
            config=settings.transaction_config(),
            max_checksum_failures=settings.max_checksum_failures,
        )

    def close(self) -> None:
        self.channel.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _transact(
        self,
        command: int,
        payload: bytes = b"",
        expected_response: int | None = None,
        also_accept: Iterable[int] = (),
        config: TransactionConfig | None = None,
    ) -> Frame | None:
        return self.engine.execute(
            self.channel,
            command,
            payload,
            expected_response,
            config=config,
            also_accept=also_accept,
        )

    # ========================================================================
    # Generic parameter access
    # ========================================================================

    def read(self, name: str) -> Any:
        """
        Read one registry parameter.

        Raises:
            KeyError: Unknown parameter name
            TransactionTimeout: No response
            MalformedPayload: Response does not decode as the parameter's type
        """
        descriptor = self.registry.descriptor(name, Direction.GET)
        with self.channel.acquire():
            if descriptor.preamble is not None:
                self._transact(*descriptor.preamble)
            frame = self._transact(descriptor.command, descriptor.encode_request(), descriptor.response)
        value = descriptor.decode_response(frame.payload)
        logger.debug("Read %s = %r", name, value)
        return value

    def write(self, name: str, value: Any) -> None:
        """
        Write one registry parameter and wait for the acknowledgment.

        Raises:
            KeyError: Unknown parameter name
            ValueError: Parameter is read-only
            TypeMismatch: Value does not fit the parameter's type (nothing is sent)
            TransactionTimeout: No acknowledgment
        """
        descriptor = self.registry.descriptor(name, Direction.SET)
        payload = descriptor.encode_request(value)
        self._transact(descriptor.command, payload, descriptor.response)
        logger.debug("Wrote %s = %r", name, value)

    def get_config(self, config_id: ConfigID) -> Any:
        return self.read(CONFIG_NAMES[ConfigID(config_id)])

    def set_config(self, config_id: ConfigID, value: Any) -> None:
        self.write(CONFIG_NAMES[ConfigID(config_id)], value)

    # ========================================================================
    # Measurements
    # ========================================================================

    def get_heading(self) -> float:
        """Heading in degrees, 0.0 to 359.9."""
        return self.read("heading")

    def get_pitch(self) -> float:
        """Pitch in degrees, -90.0 to +90.0."""
        return self.read("pitch")

    def get_roll(self) -> float:
        """Roll in degrees, -180.0 to +180.0."""
        return self.read("roll")

    def get_temperature(self) -> float:
        """Internal temperature in degrees Celsius."""
        return self.read("temperature")

    # ========================================================================
    # Configuration parameters
    # ========================================================================

    def get_declination(self) -> float:
        return self.read("declination")

    def set_declination(self, degrees: float) -> None:
        """Set magnetic declination, -180.0 to +180.0 degrees."""
        self.write("declination", degrees)

    def get_true_north(self) -> bool:
        return self.read("true_north")

    def set_true_north(self, enabled: bool) -> None:
        """Report heading relative to true north (True) or magnetic north (False)."""
        self.write("true_north", enabled)

    def get_big_endian(self) -> bool:
        return self.read("big_endian")

    def get_mounting_ref(self) -> MountingRef:
        return self.read("mounting_ref")

    def set_mounting_ref(self, mounting_ref: MountingRef) -> None:
        self.write("mounting_ref", mounting_ref)

    def get_user_cal_num_points(self) -> int:
        return self.read("user_cal_num_points")

    def set_user_cal_num_points(self, points: int) -> None:
        """Number of samples a user calibration takes."""
        self.write("user_cal_num_points", points)

    def get_user_cal_auto_sampling(self) -> bool:
        return self.read("user_cal_auto_sampling")

    def set_user_cal_auto_sampling(self, enabled: bool) -> None:
        self.write("user_cal_auto_sampling", enabled)

    def get_baud_rate(self) -> Baud:
        return self.read("baud_rate")

    def set_baud_rate(self, baud: Baud) -> None:
        """Change the module line speed. Takes effect after save() and a power cycle."""
        self.write("baud_rate", baud)

    def get_mil_out(self) -> bool:
        return self.read("mil_out")

    def set_mil_out(self, enabled: bool) -> None:
        """Report angles in mils (True) or degrees (False)."""
        self.write("mil_out", enabled)

    def get_hpr_during_cal(self) -> bool:
        return self.read("hpr_during_cal")

    def set_hpr_during_cal(self, enabled: bool) -> None:
        self.write("hpr_during_cal", enabled)

    def get_mag_coeff_set(self) -> int:
        return self.read("mag_coeff_set")

    def set_mag_coeff_set(self, index: int) -> None:
        self.write("mag_coeff_set", index)

    def get_accel_coeff_set(self) -> int:
        return self.read("accel_coeff_set")

    def set_accel_coeff_set(self, index: int) -> None:
        self.write("accel_coeff_set", index)

    # ========================================================================
    # Module information and power
    # ========================================================================

    def get_mod_info(self) -> ModInfo:
        frame = self._transact(Command.GET_MOD_INFO, expected_response=Command.GET_MOD_INFO_RESP)
        return parse_mod_info(frame.payload)

    def serial_number(self) -> int:
        frame = self._transact(Command.SERIAL_NUMBER, expected_response=Command.SERIAL_NUMBER_RESP)
        return decode_value(frame.payload, UINT32)

    def save(self) -> None:
        """
        Persist the current configuration to non-volatile memory.

        Raises:
            DeviceError: Module reported a non-zero error code
        """
        frame = self._transact(Command.SAVE, expected_response=Command.SAVE_DONE)
        error_code = decode_value(frame.payload, UINT16)
        if error_code != 0:
            logger.error("Save failed with error code %d", error_code)
            raise DeviceError(f"Save failed with error code {error_code}")

    def power_up(self) -> None:
        """Wake the module. Any byte wakes it; it answers POWER_UP_DONE or the serial number."""
        self._transact(
            Command.SERIAL_NUMBER,
            expected_response=Command.POWER_UP_DONE,
            also_accept=(Command.SERIAL_NUMBER_RESP,),
        )

    def power_down(self) -> None:
        """
        Put the module to sleep and close the transport.

        The acknowledgment is often lost as the module powers off, so a
        missing or corrupt reply is not an error.
        """
        config = replace(self.engine.config, attempts=1)
        try:
            self._transact(Command.POWER_DOWN, expected_response=Command.POWER_DOWN_DONE, config=config)
        except (TransactionTimeout, FrameError) as e:
            logger.info("No power down acknowledgment (%s)", e)
        finally:
            self.close()

    # ========================================================================
    # Data acquisition
    # ========================================================================

    def set_data_components(self, components: Iterable[DataID]) -> None:
        """Select which measurements GET_DATA reports, in order."""
        self._transact(Command.SET_DATA_COMPONENTS, build_data_components(list(components)))

    def get_data(self, components: Iterable[DataID] | None = None) -> Data:
        """
        Poll one sample.

        Args:
            components: Select these components first; None keeps the current selection
        """
        with self.channel.acquire():
            if components is not None:
                self.set_data_components(components)
            frame = self._transact(Command.GET_DATA, expected_response=Command.GET_DATA_RESP)
        return parse_data_response(frame.payload)

    def get_acq_params(self) -> AcqParams:
        frame = self._transact(Command.GET_ACQ_PARAMS, expected_response=Command.GET_ACQ_PARAMS_RESP)
        return parse_acq_params(frame.payload)

    def set_acq_params(self, params: AcqParams) -> None:
        self._transact(Command.SET_ACQ_PARAMS, build_acq_params(params), Command.SET_ACQ_PARAMS_DONE)

    def start_continuous_mode(self) -> None:
        """Start pushing GET_DATA_RESP frames every sample_delay seconds."""
        self._transact(Command.START_CONTINUOUS_MODE)

    def stop_continuous_mode(self) -> None:
        self._transact(Command.STOP_CONTINUOUS_MODE)

    def iter_data(self, timeout: float | None = None) -> Iterator[Data]:
        """
        Yield continuous-mode samples until none arrives within timeout.

        The channel is held while iterating; close the generator to release
        it early.
        """
        timeout = timeout if timeout is not None else self.engine.config.timeout
        for frame in self.engine.listen(self.channel, Command.GET_DATA_RESP, timeout):
            yield parse_data_response(frame.payload)

    # ========================================================================
    # Calibration
    # ========================================================================

    def start_cal(self, option: CalOption = CalOption.FULL_RANGE) -> int:
        """
        Begin a user calibration.

        Returns:
            Sample count reported by the module
        """
        payload = encode_value(option, _CAL_OPTION)
        frame = self._transact(Command.START_CAL, payload, Command.USER_CAL_SAMPLE_COUNT)
        return parse_sample_count(frame.payload)

    def take_user_cal_sample(self) -> int | UserCalScore:
        """
        Take one calibration sample.

        Returns:
            The running sample count, or the final score after the last sample
        """
        frame = self._transact(
            Command.TAKE_USER_CAL_SAMPLE,
            expected_response=Command.USER_CAL_SAMPLE_COUNT,
            also_accept=(Command.USER_CAL_SCORE,),
        )
        if frame.command == Command.USER_CAL_SCORE:
            return parse_user_cal_score(frame.payload)
        return parse_sample_count(frame.payload)

    def stop_cal(self) -> None:
        self._transact(Command.STOP_CAL)

    def factory_mag_coeff(self) -> None:
        """Restore factory magnetometer coefficients."""
        self._transact(Command.FACTORY_MAG_COEFF, expected_response=Command.FACTORY_MAG_COEFF_DONE)

    def factory_accel_coeff(self) -> None:
        """Restore factory accelerometer coefficients."""
        self._transact(Command.FACTORY_ACCEL_COEFF, expected_response=Command.FACTORY_ACCEL_COEFF_DONE)

    def copy_coeff_set(self, set_type: int, set_indexes: int) -> None:
        """
        Copy one coefficient set to another.

        Args:
            set_type: 0 for magnetometer, 1 for accelerometer
            set_indexes: Source index in the high nibble, destination in the low nibble
        """
        payload = encode_value(set_type, UINT8) + encode_value(set_indexes, UINT8)
        self._transact(Command.COPY_COEFF_SET, payload, Command.COPY_COEFF_SET_DONE)

    def set_fir_filters(self, taps: list[float]) -> None:
        """Load FIR filter taps (0, 4, 8, 16 or 32 of them)."""
        self._transact(Command.SET_FIR_FILTERS, build_fir_filters(taps), Command.SET_FIR_FILTERS_DONE)

    def get_fir_filters(self) -> list[float]:
        frame = self._transact(Command.GET_FIR_FILTERS, bytes(FIR_FILTER_ID), Command.GET_FIR_FILTERS_RESP)
        return parse_fir_filters(frame.payload)
