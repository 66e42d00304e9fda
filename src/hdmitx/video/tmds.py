# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0
#
# The 8b/10b video path of this encoder was inspired by the following verilog encoder:
# "Project F Library - TMDS Encoder for DVI"
#   - Original attribution:
#       Copyright Will Green
#       Open source hardware released under the MIT License
#       Learn more at https://projectf.io
#
# This implementation has an additional pipeline stage, for ~double Fmax.

"""HDMI TMDS channel encoder (video, control, TERC4 and guard band symbols)."""

from amaranth import *
from amaranth.lib import wiring
from amaranth.lib.wiring import In, Out

from .types import Lane, Mode

# Control period symbols, indexed by {CTL1, CTL0} (or {VSYNC, HSYNC})
CONTROL_SYMBOLS = [
    0b1101010100,
    0b0010101011,
    0b0101010100,
    0b1010101011,
]

# TMDS Error Reduction Coding (HDMI 1.4a Table 5-13), indexed by the 4-bit data
TERC4_SYMBOLS = [
    0b1010011100,
    0b1001100011,
    0b1011100100,
    0b1011100010,
    0b0101110001,
    0b0100011110,
    0b0110001110,
    0b0100111100,
    0b1011001100,
    0b0100111001,
    0b0110011100,
    0b1011000110,
    0b1010001110,
    0b1001110001,
    0b0101100011,
    0b1011000011,
]

VIDEO_GUARD_SYMBOLS = [
    0b1011001100,
    0b0100110011,
    0b1011001100,
]

# Channel 0 sends TERC4 during the island guard band.
ISLAND_GUARD_SYMBOL = 0b0100110011


class TMDSChannel(wiring.Component):
    """
    Encoder for one of the three HDMI TMDS data channels.

    Depending on ``mode``, the 10-bit ``tmds`` symbol is one of:

    - VIDEO_DATA: TMDS 8b/10b of ``lane.video``, DC balanced.
    - CONTROL: one of 4 control symbols selected by ``lane.ctrl``.
    - DATA_ISLAND: TERC4 of ``lane.aux``.
    - VIDEO_GUARD, DATA_ISLAND_GUARD: a fixed guard band symbol, which
      depends on the ``channel`` index (channel 0 uses TERC4 of
      ``lane.aux`` for the island guard).

    The running disparity is only tracked across consecutive video pixels,
    and is reset whenever anything else is sent.

    This component operates in the 'pixel' domain, and has 2 cycles of latency.
    """

    mode: In(Mode)
    lane: In(Lane)
    tmds: Out(10)

    def __init__(self, channel):
        assert channel in range(3)
        self.channel = channel
        super().__init__()

    def elaborate(self, platform):
        m = Module()

        # Register for output
        tmds_r = Signal(10, init=CONTROL_SYMBOLS[0])
        m.d.comb += self.tmds.eq(tmds_r)

        # Register for ongoing DC bias
        bias = Signal(signed(5), init=0)

        video = self.lane.video

        # Select basic encoding based on number of ones in the input data
        data_1s = Signal(4)
        use_xnor = Signal()

        m.d.comb += data_1s.eq(sum(video[i] for i in range(8)))

        # Determine encoding type
        m.d.comb += use_xnor.eq((data_1s > 4) | ((data_1s == 4) & (video[0] == 0)))

        # Encode color data with xor/xnor
        enc_qm = Signal(9)

        # First bit is unmodified
        m.d.comb += enc_qm[0].eq(video[0])

        # Generate the remaining bits using xor/xnor
        for i in range(7):
            m.d.comb += enc_qm[i+1].eq(Mux(
                use_xnor,
                enc_qm[i] ^ ~video[i+1],  # XNOR
                enc_qm[i] ^ video[i+1]    # XOR
            ))

        # Set indicator bit
        m.d.comb += enc_qm[8].eq(~use_xnor)

        # ========== PIPELINE STAGE ==========

        enc_qm_r = Signal(9)
        mode_r = Signal(Mode)
        ctrl_r = Signal(2)
        aux_r = Signal(4)
        m.d.pixel += [
            enc_qm_r.eq(enc_qm),
            mode_r.eq(self.mode),
            ctrl_r.eq(self.lane.ctrl),
            aux_r.eq(self.lane.aux),
        ]

        # Calculate disparity for DC balancing
        ones = Signal(signed(5))
        zeros = Signal(signed(5))
        balance = Signal(signed(5))

        m.d.comb += [
            ones.eq(sum(enc_qm_r[i] for i in range(8))),
            zeros.eq(8 - ones),
            balance.eq(ones - zeros)
        ]

        control = Array(Const(s, 10) for s in CONTROL_SYMBOLS)
        terc4 = Array(Const(s, 10) for s in TERC4_SYMBOLS)

        with m.Switch(mode_r):
            with m.Case(Mode.VIDEO_DATA):
                with m.If((bias == 0) | (balance == 0)):
                    # No prior bias or disparity
                    with m.If(enc_qm_r[8] == 0):
                        m.d.pixel += [
                            tmds_r.eq(Cat(~enc_qm_r[0:8], Const(0b10, 2))),
                            bias.eq(bias - balance)
                        ]
                    with m.Else():
                        m.d.pixel += [
                            tmds_r.eq(Cat(enc_qm_r[0:8], Const(0b01, 2))),
                            bias.eq(bias + balance)
                        ]
                with m.Elif(((bias > 0) & (balance > 0)) | ((bias < 0) & (balance < 0))):
                    m.d.pixel += [
                        tmds_r.eq(Cat(~enc_qm_r[0:8], enc_qm_r[8], Const(1, 1))),
                        bias.eq(bias + Cat(Const(0, 1), enc_qm_r[8], Const(0, 3)).as_signed() - balance)
                    ]
                with m.Else():
                    m.d.pixel += [
                        tmds_r.eq(Cat(enc_qm_r[0:8], enc_qm_r[8], Const(0, 1))),
                        bias.eq(bias - Cat(Const(0, 1), ~enc_qm_r[8], Const(0, 3)).as_signed() + balance)
                    ]

            with m.Case(Mode.VIDEO_GUARD):
                m.d.pixel += tmds_r.eq(VIDEO_GUARD_SYMBOLS[self.channel])

            with m.Case(Mode.DATA_ISLAND):
                m.d.pixel += tmds_r.eq(terc4[aux_r])

            with m.Case(Mode.DATA_ISLAND_GUARD):
                if self.channel == 0:
                    m.d.pixel += tmds_r.eq(terc4[aux_r])
                else:
                    m.d.pixel += tmds_r.eq(ISLAND_GUARD_SYMBOL)

            with m.Default():
                m.d.pixel += tmds_r.eq(control[ctrl_r])

        # Disparity only carries across consecutive video pixels.
        with m.If(mode_r != Mode.VIDEO_DATA):
            m.d.pixel += bias.eq(0)

        return m
