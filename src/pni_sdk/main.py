"""Command line entry point: print module identification."""

import argparse
import logging
import sys

from pni_sdk import __version__
from pni_sdk.core.config import Settings, setup_logging
from pni_sdk.device import Device
from pni_sdk.protocol.errors import PniError
from pni_sdk.protocol.frames import DeviceFamily

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pni-info", description="Query a PNI module for its identity")
    parser.add_argument("--port", "-p", help="Serial port (default: PNI_SERIAL_PORT or /dev/ttyUSB0)")
    parser.add_argument("--baud", "-b", type=int, help="Baud rate (default: PNI_SERIAL_BAUD or 38400)")
    parser.add_argument(
        "--family",
        "-f",
        choices=[family.value for family in DeviceFamily],
        help="Device family, selects the frame layout",
    )
    parser.add_argument("--log-level", "-l", help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {
        "serial_port": args.port,
        "serial_baud": args.baud,
        "device_family": args.family,
        "log_level": args.log_level,
    }
    settings = Settings(**{key: value for key, value in overrides.items() if value is not None})
    setup_logging(settings.log_level)

    try:
        with Device.connect(settings) as device:
            mod_info = device.get_mod_info()
            serial_number = device.serial_number()
    except PniError as e:
        logger.error("Failed to query %s: %s", settings.serial_port, e)
        return 1

    print(f"Device type:   {mod_info.device_type}")
    print(f"Revision:      {mod_info.revision}")
    print(f"Serial number: {serial_number}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
