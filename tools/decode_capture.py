#!/usr/bin/env python3
"""Decode and print frames from a captured serial binary file."""

import argparse
import sys
from pathlib import Path

from pni_sdk.protocol.constants import Command
from pni_sdk.protocol.errors import PniError
from pni_sdk.protocol.frames import DeviceFamily, Frame, FrameDecoder, family_format
from pni_sdk.protocol.responses import parse_data_response, parse_mod_info


def get_command_name(cmd: int) -> str:
    """Get human-readable command name."""
    try:
        return Command(cmd).name
    except ValueError:
        return f"UNKNOWN(0x{cmd:02X})"


def format_data_hex(data: bytes, max_len: int = 64) -> str:
    """Format data as hex string, truncating if needed."""
    if len(data) <= max_len:
        return data.hex(" ")
    return data[:max_len].hex(" ") + f"... (+{len(data) - max_len} bytes)"


def extract_frames(data: bytes, family: DeviceFamily) -> tuple[list[Frame], FrameDecoder]:
    """Extract all valid frames from raw captured data."""
    decoder = FrameDecoder(family_format(family), max_checksum_failures=len(data) + 1)
    decoder.feed(data)

    frames = []
    while True:
        frame = decoder.next_frame()
        if frame is None:
            break
        frames.append(frame)
    return frames, decoder


def decode_payload(frame: Frame) -> str | None:
    """Decode payloads with a known structure."""
    try:
        if frame.command == Command.GET_MOD_INFO_RESP:
            info = parse_mod_info(frame.payload)
            return f"type={info.device_type!r}, revision={info.revision!r}"
        if frame.command == Command.GET_DATA_RESP:
            sample = parse_data_response(frame.payload)
            return ", ".join(f"{k}={v}" for k, v in sample.model_dump(exclude_none=True).items())
    except PniError as e:
        return f"(undecodable: {e})"
    return None


def print_frame(idx: int, frame: Frame, verbose: bool = False):
    """Print a single frame."""
    print(f"[{idx:4d}] {get_command_name(frame.command)}")

    decoded = decode_payload(frame) if verbose else None
    if decoded is not None:
        print(f"       payload: {decoded}")
    elif frame.payload:
        print(f"       data[{len(frame.payload)}]: {format_data_hex(frame.payload, 64 if verbose else 32)}")

    print()


def main():
    parser = argparse.ArgumentParser(description="Decode frames from captured serial data")
    parser.add_argument("input", help="Input binary file")
    parser.add_argument(
        "--family",
        "-f",
        default=DeviceFamily.TARGETPOINT3.value,
        choices=[family.value for family in DeviceFamily],
        help="Device family (selects the frame layout)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show detailed payload decoding")
    parser.add_argument("--limit", "-n", type=int, default=0, help="Limit number of frames to show (0=all)")
    parser.add_argument("--command", "-c", type=str, help="Filter by command (e.g., GET_DATA_RESP, 0x05)")
    parser.add_argument("--stats", "-s", action="store_true", help="Show statistics only")
    args = parser.parse_args()

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: File not found: {input_path}")
        sys.exit(1)

    data = input_path.read_bytes()
    print(f"Loaded {len(data):,} bytes from {input_path}")
    print()

    frames, decoder = extract_frames(data, DeviceFamily(args.family))
    print(
        f"Extracted {len(frames)} frames ({decoder.checksum_failures} corrupt, "
        f"{decoder.bytes_discarded} bytes discarded, {decoder.pending} trailing)"
    )
    print()

    if args.stats:
        cmd_counts: dict[int, int] = {}
        for frame in frames:
            cmd_counts[frame.command] = cmd_counts.get(frame.command, 0) + 1

        print("Command distribution:")
        for cmd, count in sorted(cmd_counts.items(), key=lambda x: -x[1]):
            print(f"  {get_command_name(cmd):30s}: {count}")
        return

    indexed = list(enumerate(frames))

    if args.command:
        try:
            if args.command.startswith("0x"):
                filter_cmd = int(args.command, 16)
            else:
                filter_cmd = Command[args.command].value
        except (ValueError, KeyError):
            print(f"Unknown command: {args.command}")
            print("Available commands:", ", ".join(c.name for c in Command))
            sys.exit(1)

        indexed = [(i, f) for i, f in indexed if f.command == filter_cmd]
        print(f"Filtered to {len(indexed)} frames with command {args.command}")
        print()

    if args.limit > 0:
        indexed = indexed[: args.limit]

    print("=" * 70)
    for idx, frame in indexed:
        print_frame(idx, frame, verbose=args.verbose)


if __name__ == "__main__":
    main()
