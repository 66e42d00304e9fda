# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Raster position counter and transmission period classifier."""

from amaranth import *
from amaranth.lib import data, wiring
from amaranth.lib.wiring import In, Out
from amaranth.utils import exact_log2

from ..modeline import (ISLAND_GUARD, ISLAND_PREAMBLE, ISLAND_START,
                        PACKET_WIDTH, VIDEO_GUARD, VIDEO_PREAMBLE)


class Periods(data.Struct):
    """
    Which transmission period(s) the current raster position falls in.

    At most one of ``video_*`` / ``data_island*`` is set on any pixel,
    nothing set means a plain control period.
    """

    video_data:           unsigned(1)
    video_guard:          unsigned(1)
    video_preamble:       unsigned(1)
    data_island:          unsigned(1)
    data_island_preamble: unsigned(1)
    data_island_guard:    unsigned(1)
    # First pixel of each 32-pixel packet slot.
    packet_slot_start:    unsigned(1)
    # First pixel of the whole data island.
    data_island_first:    unsigned(1)


class TimingGenerator(wiring.Component):

    """
    Free-running raster counter in the 'pixel' domain.

    ``x`` and ``y`` advance once per pixel in row-major order and wrap at
    the frame size. Everything else is combinational on ``x`` and ``y``:
    the pixel source must present the pixel at (``x``, ``y``) on the
    same cycle, and downstream logic registers both together.

    With ``guard_enabled=False`` (DVI), all preambles, guard bands and
    data islands collapse into plain control periods.
    """

    def __init__(self, timing, guard_enabled=True):
        self.timing = timing
        self.guard_enabled = guard_enabled
        super().__init__({
            "x":           Out(range(timing.frame_width)),
            "y":           Out(range(timing.frame_height)),
            # Wire level, polarity already applied.
            "hsync":       Out(1),
            "vsync":       Out(1),
            # Strobes on (0, 0).
            "frame_start": Out(1),
            "periods":     Out(Periods),
        })

    def elaborate(self, platform):
        m = Module()

        t = self.timing
        x = self.x
        y = self.y

        with m.If(x == t.frame_width - 1):
            m.d.pixel += x.eq(0)
            with m.If(y == t.frame_height - 1):
                m.d.pixel += y.eq(0)
            with m.Else():
                m.d.pixel += y.eq(y + 1)
        with m.Else():
            m.d.pixel += x.eq(x + 1)

        m.d.comb += [
            self.hsync.eq(((x >= t.h_sync_start) & (x < t.h_sync_end)) ^ int(t.sync_invert)),
            self.vsync.eq(((y >= t.v_sync_start) & (y < t.v_sync_end)) ^ int(t.sync_invert)),
            self.frame_start.eq((x == 0) & (y == 0)),
        ]

        ssx = t.screen_start_x
        ssy = t.screen_start_y
        p = self.periods

        m.d.comb += p.video_data.eq((x >= ssx) & (y >= ssy))

        if not self.guard_enabled:
            return m

        m.d.comb += [
            p.video_guard.eq((x >= ssx - VIDEO_GUARD) & (x < ssx) & (y >= ssy)),
            p.video_preamble.eq((x >= ssx - VIDEO_GUARD - VIDEO_PREAMBLE) &
                                (x < ssx - VIDEO_GUARD)),
        ]

        if t.packet_slot_capacity == 0:
            return m

        island_end = t.island_end_x
        m.d.comb += [
            p.data_island.eq((x >= ISLAND_START) & (x < island_end)),
            p.data_island_preamble.eq(x < ISLAND_PREAMBLE),
            p.data_island_guard.eq(
                ((x >= ISLAND_PREAMBLE) & (x < ISLAND_START)) |
                ((x >= island_end) & (x < island_end + ISLAND_GUARD))),
            p.packet_slot_start.eq(p.data_island & ((x - ISLAND_START)[:exact_log2(PACKET_WIDTH)] == 0)),
            p.data_island_first.eq(x == ISLAND_START),
        ]

        return m
