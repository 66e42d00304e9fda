# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""
Command line interface for elaborating or simulating the HDMI transmitter.
"""
import argparse
import enum
import logging
import os
import sys

from amaranth.back               import verilog

from hdmitx                      import sim
from hdmitx.config               import HDMIConfig, SERIAL_RATIOS
from hdmitx.hdmi                 import HDMITransmitter
from hdmitx.modeline             import VideoTiming
from hdmitx.types                import AudioRate

class CliAction(str, enum.Enum):
    Verilog  = "verilog"
    Simulate = "sim"

def main(args=None):

    # Configure logging.
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    # Parse arguments
    parser = argparse.ArgumentParser(description=__doc__.strip())

    parser.add_argument("--vic", type=int, default=1,
                        choices=sorted(VideoTiming.all_timings()),
                        help="CEA-861 Video ID Code (default=1, 640x480p).")
    parser.add_argument("--refresh", type=float, default=None,
                        help="Refresh rate in Hz (default: first supported by the VIC).")
    parser.add_argument("--dvi", action="store_true",
                        help="Emit a plain DVI signal: no guard bands, no audio, no InfoFrames.")
    parser.add_argument("--audio-rate", type=int, default=AudioRate.default().value,
                        choices=[r.value for r in AudioRate.all()],
                        help=f"Audio sample rate in Hz (default={AudioRate.default().value}).")
    parser.add_argument("--audio-bit-width", type=int, default=16,
                        help="Audio sample width, 16 to 24 bits (default=16).")
    parser.add_argument("--serial-ratio", type=int, default=10,
                        choices=SERIAL_RATIOS,
                        help="'tmds' / 'pixel' clock ratio. 10: SDR output, 5: DDR output (default=10).")
    parser.add_argument("--vendor-name", type=str, default=None,
                        help="Send a Source Product Description InfoFrame with this vendor name.")
    parser.add_argument("--product-description", type=str, default="",
                        help="Product description for the Source Product Description InfoFrame.")
    parser.add_argument("--frames", type=int, default=1,
                        help="Simulation: number of frames to simulate (default=1).")
    parser.add_argument("--trace", type=str, default=None,
                        help="Simulation: write a VCD trace to this file.")
    parser.add_argument("--output", type=str, default=os.path.join("build", "hdmitx.v"),
                        help="Verilog: output file (default=build/hdmitx.v).")

    parser.add_argument("action", type=CliAction,
                        choices=[CliAction.Verilog.value, CliAction.Simulate.value])

    # Print help if no arguments are passed.
    if args is None:
        args = sys.argv[1:] or ["--help"]
    args = parser.parse_args(args=args)

    try:
        config = HDMIConfig(
            video_id_code=args.vic,
            video_refresh_rate=args.refresh,
            dvi_output=args.dvi,
            audio_rate=AudioRate(args.audio_rate),
            audio_bit_width=args.audio_bit_width,
            vendor_name=args.vendor_name,
            product_description=args.product_description,
            serial_ratio=args.serial_ratio,
        )
    except ValueError as e:
        parser.error(str(e))

    config.log_summary()

    if args.action == CliAction.Verilog:
        hdmi = HDMITransmitter(config)
        output_dir = os.path.dirname(args.output)
        if output_dir and not os.path.exists(output_dir):
            os.makedirs(output_dir)
        with open(args.output, "w") as f:
            f.write(verilog.convert(hdmi, name="hdmitx"))
        logging.info(f"wrote {args.output}")

    if args.action == CliAction.Simulate:
        packets, overflow = sim.simulate(config, frames=args.frames, vcd_file=args.trace)
        for name, count in sorted(packets.items()):
            print(f"{name:<26} {count}")
        if overflow:
            sys.exit(1)

if __name__ == "__main__":
    main()
