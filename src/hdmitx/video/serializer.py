# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""TMDS symbol serializer, 'pixel' -> 'tmds' domain."""

from amaranth import *
from amaranth.lib import data, wiring
from amaranth.lib.wiring import In, Out

# The TMDS clock channel is itself sent as a 10-bit symbol, one period per pixel.
CLOCK_SYMBOL = 0b0000011111


class Serializer(wiring.Component):

    """
    Shift out 3 TMDS data symbols plus the clock channel, LSB first.

    Assumes existing clock domains 'pixel' and 'tmds', where 'tmds' runs at
    exactly ``ratio`` times the pixel clock and is phase-locked to it.

    Symbols are captured in a 'pixel' domain register. A one-hot ring counter
    in the 'tmds' domain loads all 4 lanes at the symbol boundary only, and
    shifts out ``10 // ratio`` bits per 'tmds' cycle otherwise:

    - ``ratio=10``: 1 bit per cycle, for an SDR output buffer.
    - ``ratio=5``: 2 bits per cycle, bit 0 first, for a DDR output buffer
      (e.g. ``ODDRX1F`` on ECP5).

    Lane 3 of ``o`` is the clock channel.
    """

    def __init__(self, ratio=10):
        assert ratio in (10, 5)
        self.ratio = ratio
        self.bits = 10 // ratio
        super().__init__({
            "symbols": In(data.ArrayLayout(10, 3)),
            "o":       Out(data.ArrayLayout(self.bits, 4)),
        })

    def elaborate(self, platform):
        m = Module()

        symbols_r = Signal(data.ArrayLayout(10, 4))
        m.d.pixel += [
            symbols_r[0].eq(self.symbols[0]),
            symbols_r[1].eq(self.symbols[1]),
            symbols_r[2].eq(self.symbols[2]),
            symbols_r[3].eq(CLOCK_SYMBOL),
        ]

        # One-hot ring, bit 0 marks the symbol boundary
        ring = Signal(self.ratio, init=1)
        m.d.tmds += ring.eq(Cat(ring[-1], ring[:-1]))

        shift = [Signal(10, name=f"shift{n}") for n in range(4)]
        for n in range(4):
            with m.If(ring[0]):
                m.d.tmds += shift[n].eq(symbols_r[n])
            with m.Else():
                m.d.tmds += shift[n].eq(shift[n] >> self.bits)
            m.d.comb += self.o[n].eq(shift[n][:self.bits])

        return m
