# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Audio Sample packets carrying 2-channel LPCM (HDMI 1.4a Section 5.3.4)."""

from amaranth import *
from amaranth.lib import wiring
from amaranth.lib.wiring import In, Out

from ..audio.bridge import AudioFrame
from ..types import AudioRate, PacketType
from . import Packet

# IEC 60958 channel status blocks are 192 frames long.
IEC60958_FRAMES = 192

# Word length field, bits 33..35 of the channel status (bit 33 in the LSB),
# indexed by how many bits the sample is shorter than the maximum length.
_WORD_LENGTH_CODES = {
    0: 0b101,
    1: 0b100,
    2: 0b010,
    3: 0b110,
    4: 0b001,
}


def channel_status(audio_rate, sample_width, channel):
    """
    192-bit IEC 60958-3 consumer channel status block, bit 0 in the LSB.

    ``channel`` is the IEC 60958 channel number, 1 for left, 2 for right.
    """
    rate = AudioRate(audio_rate)
    max_width = 20 if sample_width <= 20 else 24
    status = 0
    status |= 0 << 0                          # Consumer use
    status |= 0 << 1                          # Linear PCM
    status |= 1 << 2                          # No copyright asserted
    status |= 0b000 << 3                      # No pre-emphasis
    status |= 0b00 << 6                       # Mode 0
    status |= 0x00 << 8                       # Category code: general
    status |= 0b0000 << 16                    # Source number: unspecified
    status |= channel << 20
    status |= rate.iec60958_code() << 24
    status |= 0b00 << 28                      # Clock accuracy: level II
    status |= int(max_width == 24) << 32
    status |= _WORD_LENGTH_CODES[max_width - sample_width] << 33
    return status


class AudioSamplePacket(wiring.Component):

    """
    Audio Sample packet, layout 0 (2 channels), one frame per packet.

    Only subpacket 0 is used. It holds the left and right samples
    left-justified into 24 bits, followed by the IEC 60958 V, U, C and P
    bits of each channel. The channel status bit is selected by
    ``frame_counter`` (0..191), and 'B.0' in the header marks the start
    of a channel status block.
    """

    def __init__(self, sample_width=16, audio_rate=AudioRate.FS_44_1KHZ):
        self.sample_width = sample_width
        self.audio_rate = audio_rate
        super().__init__({
            "frame":         In(AudioFrame(sample_width)),
            "frame_counter": In(range(IEC60958_FRAMES)),
            "o":             Out(Packet),
        })

    def elaborate(self, platform):
        m = Module()

        pad = Const(0, 24 - self.sample_width)
        samples = [
            Cat(pad, self.frame.left),
            Cat(pad, self.frame.right),
        ]

        status_bits = []
        for channel in (1, 2):
            status = Const(channel_status(self.audio_rate, self.sample_width, channel),
                           IEC60958_FRAMES)
            status_bits.append(status.bit_select(self.frame_counter, 1))

        # SB6: {P_R, C_R, U_R, V_R, P_L, C_L, U_L, V_L}
        flags = []
        for sample, c in zip(samples, status_bits):
            v = Const(0, 1) # Valid
            u = Const(0, 1) # No user data
            p = sample.xor() ^ c ^ u ^ v
            flags.append(Cat(v, u, c, p))

        sample_present = 0b0001
        layout         = 0
        sample_flat    = 0b0000
        block_start    = self.frame_counter == 0

        m.d.comb += [
            self.o.header.eq(Cat(
                Const(PacketType.AUDIO_SAMPLE.value, 8),
                Const(sample_present, 4), Const(layout, 1), Const(0, 3),
                Const(sample_flat, 4), block_start, Const(0, 3),
            )),
            self.o.sub[0].eq(Cat(samples[0], samples[1], flags[0], flags[1])),
            self.o.sub[1].eq(0),
            self.o.sub[2].eq(0),
            self.o.sub[3].eq(0),
        ]

        return m
