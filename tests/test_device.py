"""Tests for the Device command facade against a scripted module."""

import struct
from unittest.mock import MagicMock, patch

import pytest

from pni_sdk.core.config import Settings
from pni_sdk.core.models import AcqParams, UserCalScore
from pni_sdk.device import Device
from pni_sdk.protocol.codec import FixedPointType
from pni_sdk.protocol.constants import Baud, CalOption, Command, ConfigID, DataID, MountingRef
from pni_sdk.protocol.errors import DeviceError, TransactionTimeout, TypeMismatch
from pni_sdk.protocol.frames import PNI_NATIVE, Frame
from pni_sdk.protocol.registry import Parameter, ParameterRegistry

HEADING_GET = 0x01
DECLINATION_GET = 0x02
DECLINATION_GET_RESP = 0x03
DECLINATION_SET = 0x04
DECLINATION_SET_ACK = 0x05

COMPASS_REGISTRY = ParameterRegistry(
    [
        Parameter("heading", FixedPointType(100, signed=False), HEADING_GET, HEADING_GET),
        Parameter(
            "declination",
            FixedPointType(100),
            DECLINATION_GET,
            DECLINATION_GET_RESP,
            set_command=DECLINATION_SET,
            set_ack=DECLINATION_SET_ACK,
        ),
    ]
)


@pytest.fixture
def compass(transport, fast_config) -> Device:
    """Device with a fixed-point registry over the marked layout."""
    return Device(transport, registry=COMPASS_REGISTRY, config=fast_config)


@pytest.fixture
def device(pni_transport, fast_config) -> Device:
    """Device speaking the native PNI layout with the full parameter table."""
    return Device(pni_transport, PNI_NATIVE, config=fast_config)


class TestFixedPointRegistry:
    """End-to-end get/set through a custom registry."""

    def test_get_heading(self, compass, transport):
        """Raw 36000 at scale 100 reads back as 360.0."""
        transport.script(HEADING_GET, transport.frame(HEADING_GET, b"\x8c\xa0"))

        assert compass.get_heading() == 360.0
        assert transport.written == [Frame(HEADING_GET).to_bytes()]

    def test_set_declination(self, compass, transport):
        """-5.25 is sent as raw -525 and acknowledged."""
        transport.script(DECLINATION_SET, transport.frame(DECLINATION_SET_ACK))

        compass.set_declination(-5.25)

        assert transport.written_frames == [Frame(DECLINATION_SET, b"\xfd\xf3")]

    def test_set_declination_wrong_ack(self, compass, transport, fast_config):
        """An acknowledgment with the wrong command id is not success."""
        transport.script(DECLINATION_SET, *[transport.frame(DECLINATION_GET_RESP)] * fast_config.attempts)

        with pytest.raises(TransactionTimeout):
            compass.set_declination(-5.25)

    def test_get_declination(self, compass, transport):
        transport.script(DECLINATION_GET, transport.frame(DECLINATION_GET_RESP, b"\xfd\xf3"))
        assert compass.get_declination() == -5.25

    def test_out_of_range_not_sent(self, compass, transport):
        """Encoding failures happen before anything reaches the wire."""
        with pytest.raises(TypeMismatch):
            compass.set_declination(1000.0)

        assert transport.written == []

    def test_read_only_parameter(self, compass):
        with pytest.raises(ValueError):
            compass.write("heading", 10.0)


class TestConfiguration:
    """Tests for GET_CONFIG / SET_CONFIG parameters."""

    def test_set_declination(self, device, pni_transport):
        pni_transport.script(Command.SET_CONFIG, pni_transport.frame(Command.SET_CONFIG_DONE))

        device.set_declination(-5.25)

        assert pni_transport.written_frames == [
            Frame(Command.SET_CONFIG, bytes([ConfigID.DECLINATION]) + struct.pack(">f", -5.25))
        ]

    def test_get_declination(self, device, pni_transport):
        payload = struct.pack(">f", 3.5)
        pni_transport.script(Command.GET_CONFIG, pni_transport.frame(Command.GET_CONFIG_RESP, payload))

        assert device.get_declination() == 3.5
        assert pni_transport.written_frames == [Frame(Command.GET_CONFIG, bytes([ConfigID.DECLINATION]))]

    def test_get_mounting_ref(self, device, pni_transport):
        payload = bytes([MountingRef.Z_DOWN_0])
        pni_transport.script(Command.GET_CONFIG, pni_transport.frame(Command.GET_CONFIG_RESP, payload))

        assert device.get_mounting_ref() is MountingRef.Z_DOWN_0

    def test_set_mounting_ref_type_checked(self, device, pni_transport):
        with pytest.raises(TypeMismatch):
            device.set_mounting_ref(Baud.B9600)

        assert pni_transport.written == []

    def test_set_baud_rate(self, device, pni_transport):
        pni_transport.script(Command.SET_CONFIG, pni_transport.frame(Command.SET_CONFIG_DONE))

        device.set_baud_rate(Baud.B115200)

        assert pni_transport.written_frames == [Frame(Command.SET_CONFIG, bytes([ConfigID.BAUD_RATE, 14]))]

    def test_set_user_cal_num_points(self, device, pni_transport):
        pni_transport.script(Command.SET_CONFIG, pni_transport.frame(Command.SET_CONFIG_DONE))

        device.set_user_cal_num_points(12)

        assert pni_transport.written_frames[0].payload == bytes([ConfigID.USER_CAL_NUM_POINTS, 0, 0, 0, 12])

    def test_get_config_by_id(self, device, pni_transport):
        payload = bytes([1])
        pni_transport.script(Command.GET_CONFIG, pni_transport.frame(Command.GET_CONFIG_RESP, payload))

        assert device.get_config(ConfigID.TRUE_NORTH) is True

    def test_set_config_by_id(self, device, pni_transport):
        pni_transport.script(Command.SET_CONFIG, pni_transport.frame(Command.SET_CONFIG_DONE))

        device.set_config(ConfigID.MIL_OUT, False)

        assert pni_transport.written_frames[0].payload == bytes([ConfigID.MIL_OUT, 0])


class TestModuleInfo:
    """Tests for identification, save and power commands."""

    def test_get_mod_info(self, device, pni_transport):
        pni_transport.script(Command.GET_MOD_INFO, pni_transport.frame(Command.GET_MOD_INFO_RESP, b"TP3 1.04"))

        info = device.get_mod_info()

        assert info.device_type == "TP3 "
        assert info.revision == "1.04"
        assert pni_transport.written == [bytes.fromhex("000501efd4")]

    def test_serial_number(self, device, pni_transport):
        pni_transport.script(
            Command.SERIAL_NUMBER, pni_transport.frame(Command.SERIAL_NUMBER_RESP, struct.pack(">I", 1234567))
        )
        assert device.serial_number() == 1234567

    def test_save(self, device, pni_transport):
        pni_transport.script(Command.SAVE, pni_transport.frame(Command.SAVE_DONE, b"\x00\x00"))
        device.save()

    def test_save_error_code(self, device, pni_transport):
        pni_transport.script(Command.SAVE, pni_transport.frame(Command.SAVE_DONE, b"\x00\x01"))

        with pytest.raises(DeviceError):
            device.save()

    def test_power_up_serial_number_reply(self, device, pni_transport):
        """A module that was awake answers with its serial number."""
        pni_transport.script(Command.SERIAL_NUMBER, pni_transport.frame(Command.SERIAL_NUMBER_RESP, bytes(4)))
        device.power_up()

    def test_power_up_done(self, device, pni_transport):
        pni_transport.script(Command.SERIAL_NUMBER, pni_transport.frame(Command.POWER_UP_DONE))
        device.power_up()

    def test_power_down_closes(self, device, pni_transport):
        """No acknowledgment is tolerated; the transport is closed afterwards."""
        device.power_down()

        assert len(pni_transport.written) == 1
        assert pni_transport.closed

    def test_power_down_acknowledged(self, device, pni_transport):
        pni_transport.script(Command.POWER_DOWN, pni_transport.frame(Command.POWER_DOWN_DONE))

        device.power_down()

        assert pni_transport.closed


class TestAcquisition:
    """Tests for data components and acquisition modes."""

    def test_get_heading_selects_component(self, device, pni_transport):
        """A single measurement selects its component, then polls."""
        payload = bytes([1, DataID.HEADING]) + struct.pack(">f", 231.5)
        pni_transport.script(Command.GET_DATA, pni_transport.frame(Command.GET_DATA_RESP, payload))

        assert device.get_heading() == 231.5
        assert pni_transport.written_frames == [
            Frame(Command.SET_DATA_COMPONENTS, bytes([1, DataID.HEADING])),
            Frame(Command.GET_DATA),
        ]

    def test_get_data(self, device, pni_transport):
        payload = bytes([2, DataID.PITCH]) + struct.pack(">f", -3.0) + bytes([DataID.ROLL]) + struct.pack(">f", 4.0)
        pni_transport.script(Command.GET_DATA, pni_transport.frame(Command.GET_DATA_RESP, payload))

        data = device.get_data([DataID.PITCH, DataID.ROLL])

        assert (data.pitch, data.roll) == (-3.0, 4.0)
        assert pni_transport.written_frames[0] == Frame(Command.SET_DATA_COMPONENTS, bytes([2, 24, 25]))

    def test_get_acq_params(self, device, pni_transport):
        payload = b"\x01\x00" + struct.pack(">ff", 0.0, 0.5)
        pni_transport.script(Command.GET_ACQ_PARAMS, pni_transport.frame(Command.GET_ACQ_PARAMS_RESP, payload))

        assert device.get_acq_params() == AcqParams(acquisition_mode=True, flush_filter=False, sample_delay=0.5)

    def test_set_acq_params(self, device, pni_transport):
        pni_transport.script(Command.SET_ACQ_PARAMS, pni_transport.frame(Command.SET_ACQ_PARAMS_DONE))

        device.set_acq_params(AcqParams(acquisition_mode=False, sample_delay=0.25))

        assert pni_transport.written_frames[0].payload == b"\x00\x00" + struct.pack(">ff", 0.0, 0.25)

    def test_continuous_mode(self, device, pni_transport):
        """Pushed samples are yielded until the stream goes quiet."""
        device.start_continuous_mode()
        for heading in (10.0, 20.0, 30.0):
            sample = bytes([1, DataID.HEADING]) + struct.pack(">f", heading)
            pni_transport.inject(pni_transport.frame(Command.GET_DATA_RESP, sample))

        headings = [data.heading for data in device.iter_data(timeout=0.02)]
        device.stop_continuous_mode()

        assert headings == [10.0, 20.0, 30.0]
        assert [frame.command for frame in pni_transport.written_frames] == [
            Command.START_CONTINUOUS_MODE,
            Command.STOP_CONTINUOUS_MODE,
        ]


class TestCalibration:
    """Tests for calibration commands."""

    def test_start_cal(self, device, pni_transport):
        pni_transport.script(
            Command.START_CAL, pni_transport.frame(Command.USER_CAL_SAMPLE_COUNT, struct.pack(">I", 0))
        )

        assert device.start_cal(CalOption.LIMITED_TILT) == 0
        assert pni_transport.written_frames[0].payload == struct.pack(">I", 40)

    def test_take_samples_until_score(self, device, pni_transport):
        score = struct.pack(">6f", 0.5, 0.0, 0.25, 1.0, 2.0, 3.0)
        pni_transport.script(
            Command.TAKE_USER_CAL_SAMPLE,
            pni_transport.frame(Command.USER_CAL_SAMPLE_COUNT, struct.pack(">I", 1)),
            pni_transport.frame(Command.USER_CAL_SCORE, score),
        )

        assert device.take_user_cal_sample() == 1
        result = device.take_user_cal_sample()

        assert isinstance(result, UserCalScore)
        assert result.tilt_range == 3.0

    def test_stop_cal(self, device, pni_transport):
        device.stop_cal()
        assert pni_transport.written_frames == [Frame(Command.STOP_CAL)]

    def test_factory_mag_coeff(self, device, pni_transport):
        pni_transport.script(Command.FACTORY_MAG_COEFF, pni_transport.frame(Command.FACTORY_MAG_COEFF_DONE))

        device.factory_mag_coeff()

        assert pni_transport.written_frames == [Frame(Command.FACTORY_MAG_COEFF)]

    def test_factory_accel_coeff(self, device, pni_transport):
        pni_transport.script(Command.FACTORY_ACCEL_COEFF, pni_transport.frame(Command.FACTORY_ACCEL_COEFF_DONE))
        device.factory_accel_coeff()

    def test_copy_coeff_set(self, device, pni_transport):
        pni_transport.script(Command.COPY_COEFF_SET, pni_transport.frame(Command.COPY_COEFF_SET_DONE))

        device.copy_coeff_set(0, 0x10)

        assert pni_transport.written_frames[0].payload == b"\x00\x10"

    def test_set_fir_filters(self, device, pni_transport):
        pni_transport.script(Command.SET_FIR_FILTERS, pni_transport.frame(Command.SET_FIR_FILTERS_DONE))

        device.set_fir_filters([0.25] * 4)

        assert pni_transport.written_frames[0].payload == bytes([3, 1, 4]) + struct.pack(">4d", *[0.25] * 4)

    def test_get_fir_filters(self, device, pni_transport):
        payload = bytes([3, 1, 4]) + struct.pack(">4d", 0.1, 0.2, 0.3, 0.4)
        pni_transport.script(Command.GET_FIR_FILTERS, pni_transport.frame(Command.GET_FIR_FILTERS_RESP, payload))

        assert device.get_fir_filters() == [0.1, 0.2, 0.3, 0.4]
        assert pni_transport.written_frames[0] == Frame(Command.GET_FIR_FILTERS, b"\x03\x01")


class TestConnect:
    """Tests for building a Device from settings."""

    def test_connect_uses_settings(self):
        settings = Settings(serial_port="/dev/ttyS3", serial_baud=9600, request_timeout=0.5, retry_attempts=2)

        with patch("pni_sdk.device.SerialConnection") as connection_cls:
            connection = MagicMock()
            connection_cls.return_value = connection

            device = Device.connect(settings)

        connection_cls.assert_called_once_with("/dev/ttyS3", 9600, 0.5)
        connection.connect.assert_called_once()
        assert device.channel.format is PNI_NATIVE
        assert device.engine.config.attempts == 2

    def test_context_manager_closes(self, transport):
        with Device(transport) as device:
            assert device.channel.transport is transport

        assert transport.closed
