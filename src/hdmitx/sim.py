# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0
#

"""Utilities for simulating the HDMI transmitter."""

import collections
import logging

from amaranth              import *
from amaranth.sim          import Simulator

from .hdmi                 import HDMITransmitter
from .types                import PacketType


class SimulationHarness(Elaboratable):

    """
    :py:`HDMITransmitter` with a test pattern and a test tone attached.

    - Pixels are a gradient: red follows ``x``, green follows ``y``.
    - Audio is a stereo sawtooth, one frame on every 'audio' clock, with
      the right channel inverted.
    """

    def __init__(self, config, *, timing=None):
        self.hdmi = HDMITransmitter(config, timing=timing)

    def elaborate(self, platform):
        m = Module()
        m.submodules.hdmi = hdmi = self.hdmi

        m.d.comb += [
            hdmi.rgb.r.eq(hdmi.x),
            hdmi.rgb.g.eq(hdmi.y),
            hdmi.rgb.b.eq(hdmi.x + hdmi.y),
        ]

        sawtooth = Signal(hdmi.config.audio_bit_width)
        m.d.audio += sawtooth.eq(sawtooth + 1)
        m.d.comb += [
            hdmi.audio.valid.eq(1),
            hdmi.audio.payload.left.eq(sawtooth),
            hdmi.audio.payload.right.eq(~sawtooth),
        ]

        return m


def add_clocks(sim, config, *, pixel_hz=None, audio_hz=None):
    """
    Add 'pixel', 'tmds' and 'audio' clocks at their nominal rates (or at
    the given overrides). The 'tmds' edges are offset by a quarter period so
    they never coincide with 'pixel' edges.
    """
    pixel_period = 1 / (pixel_hz or config.pixel_clk_hz)
    tmds_period = pixel_period / config.serial_ratio
    audio_period = 1 / (audio_hz or int(config.audio_rate))
    sim.add_clock(pixel_period, domain="pixel")
    sim.add_clock(tmds_period, phase=tmds_period / 4, domain="tmds")
    sim.add_clock(audio_period, phase=pixel_period / 3, domain="audio")


def simulate(config, *, frames=1, timing=None, vcd_file=None, audio_hz=None):
    """
    Run the :py:`SimulationHarness` for ``frames`` frames.

    Returns a ``collections.Counter`` of the packet types sent, and whether
    the audio bridge overflowed.
    """
    dut = SimulationHarness(config, timing=timing)
    hdmi = dut.hdmi
    timing = hdmi.timing
    ticks = frames * timing.frame_width * timing.frame_height

    packets = collections.Counter()
    overflow = False

    async def testbench(ctx):
        nonlocal overflow
        for _ in range(ticks):
            slot_start = ctx.get(hdmi.slot_start)
            await ctx.tick("pixel")
            if slot_start:
                packets[PacketType(ctx.get(hdmi.packet_type)).name] += 1
        overflow = bool(ctx.get(hdmi.audio_overflow))

    sim = Simulator(dut)
    add_clocks(sim, config, audio_hz=audio_hz)
    sim.add_testbench(testbench)

    logging.info(f"simulating {frames} frame(s), {ticks} pixel clocks")
    if vcd_file is not None:
        with sim.write_vcd(vcd_file=open(vcd_file, "w")):
            sim.run()
    else:
        sim.run()

    if overflow:
        logging.error("audio sample bridge overflowed during simulation!")

    return packets, overflow
