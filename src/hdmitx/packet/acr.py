# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

from amaranth import *
from amaranth.lib import wiring
from amaranth.lib.wiring import In, Out

from ..audio.bridge import CTS_WIDTH
from ..types import PacketType
from . import Packet


class AudioClockRegeneration(wiring.Component):

    """
    Audio Clock Regeneration packet (HDMI 1.4a Section 5.3.3).

    Tells the sink how to rebuild the audio clock from the TMDS clock:
    128*fs = f_tmds * N / CTS. ``n`` is fixed at elaboration time, ``cts``
    is measured at runtime and must be held stable while the packet is sent.

    All 4 subpackets are identical.
    """

    cts: In(CTS_WIDTH)
    o:   Out(Packet)

    def __init__(self, n):
        assert 0 < n < 2**20
        self.n = n
        super().__init__()

    def elaborate(self, platform):
        m = Module()

        def be20(value):
            # 3 bytes, most significant first: {0000, v[19:16]}, v[15:8], v[7:0]
            return Cat(value[16:20], Const(0, 4), value[8:16], value[0:8])

        subpacket = Cat(Const(0, 8), be20(self.cts), be20(Const(self.n, 20)))

        m.d.comb += self.o.header.eq(PacketType.AUDIO_CLOCK_REGENERATION.value)
        for n in range(4):
            m.d.comb += self.o.sub[n].eq(subpacket)

        return m
