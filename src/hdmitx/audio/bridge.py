# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Audio sample bridge, 'audio' -> 'pixel' domain."""

from amaranth import *
from amaranth.lib import data, stream, wiring
from amaranth.lib.cdc import FFSynchronizer
from amaranth.lib.fifo import AsyncFIFO
from amaranth.lib.wiring import In, Out

# Width of the CTS field in Audio Clock Regeneration packets.
CTS_WIDTH = 20


class AudioFrame(data.StructLayout):
    """
    One stereo audio frame: a left and a right PCM sample.
    """
    def __init__(self, sample_width):
        super().__init__({
            "left":  signed(sample_width),
            "right": signed(sample_width),
        })


class AudioSampleBridge(wiring.Component):

    """
    Move stereo frames from the 'audio' domain into the 'pixel' domain,
    and measure the ratio between the two clocks.

    - 'audio' domain: ``i`` accepts one :py:`AudioFrame` per ``valid`` strobe.
      A frame pushed while the FIFO is full is dropped, and sets the sticky
      ``overflow`` flag. With a correctly sized configuration this never
      happens, so ``overflow`` indicates a configuration or clocking error.

    - 'pixel' domain: ``frame`` is the oldest buffered frame, valid while
      ``level`` is nonzero. Strobe ``pop`` to discard it.

    Clock ratio (Audio Clock Regeneration 'CTS'): every ``n // 128`` audio
    frames, a toggle is sent across into the 'pixel' domain. The number of
    pixel clocks between toggles is latched into ``cts``, and ``cts_update``
    strobes whenever it is. The first toggle only starts the count, so
    ``cts_valid`` is set from the second one onwards.
    """

    def __init__(self, sample_width=16, n=6272, depth=16):
        assert n % 128 == 0
        self.sample_width = sample_width
        self.n = n
        self.depth = depth
        self.frame_layout = AudioFrame(sample_width)
        super().__init__({
            # 'audio' domain
            "i":          In(stream.Signature(self.frame_layout)),
            # 'pixel' domain
            "frame":      Out(self.frame_layout),
            "level":      Out(range(depth + 1)),
            "pop":        In(1),
            "overflow":   Out(1),
            "cts":        Out(CTS_WIDTH),
            "cts_update": Out(1),
            "cts_valid":  Out(1),
        })

    def elaborate(self, platform):
        m = Module()

        m.submodules.fifo = fifo = AsyncFIFO(
            width=self.frame_layout.size,
            depth=self.depth,
            w_domain="audio",
            r_domain="pixel"
        )

        #
        # 'audio' domain: push frames, flag overflows.
        #

        m.d.comb += [
            fifo.w_data.eq(self.i.payload),
            fifo.w_en.eq(self.i.valid),
            # Never stall the source, a full FIFO drops the frame instead.
            self.i.ready.eq(1),
        ]

        overflow_audio = Signal()
        with m.If(self.i.valid & ~fifo.w_rdy):
            m.d.audio += overflow_audio.eq(1)
        m.submodules += FFSynchronizer(overflow_audio, self.overflow, o_domain="pixel")

        #
        # 'pixel' domain: peek and pop frames.
        #

        m.d.comb += [
            self.frame.eq(fifo.r_data),
            self.level.eq(fifo.r_level),
            fifo.r_en.eq(self.pop),
        ]

        #
        # Clock ratio measurement.
        #

        frames_per_toggle = self.n // 128
        frame_count = Signal(range(frames_per_toggle))
        toggle_audio = Signal()
        with m.If(self.i.valid):
            with m.If(frame_count == frames_per_toggle - 1):
                m.d.audio += [
                    frame_count.eq(0),
                    toggle_audio.eq(~toggle_audio),
                ]
            with m.Else():
                m.d.audio += frame_count.eq(frame_count + 1)

        toggle_pixel = Signal()
        l_toggle_pixel = Signal()
        m.submodules += FFSynchronizer(toggle_audio, toggle_pixel, o_domain="pixel")
        m.d.pixel += l_toggle_pixel.eq(toggle_pixel)

        # Counts the pixel clock of the edge itself, so a toggle every
        # K pixel clocks latches exactly K.
        pixel_count = Signal(CTS_WIDTH)
        started = Signal()
        with m.If(toggle_pixel != l_toggle_pixel):
            m.d.comb += self.cts_update.eq(1)
            m.d.pixel += [
                self.cts.eq(pixel_count),
                pixel_count.eq(1),
                started.eq(1),
            ]
            with m.If(started):
                m.d.pixel += self.cts_valid.eq(1)
        with m.Elif(pixel_count != 2**CTS_WIDTH - 1):
            m.d.pixel += pixel_count.eq(pixel_count + 1)

        return m
