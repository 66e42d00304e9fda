# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Top-level HDMI transmitter: raster timing, data islands, TMDS encoding."""

from amaranth import *
from amaranth.lib import data, stream, wiring
from amaranth.lib.wiring import In, Out

from .audio.bridge import CTS_WIDTH, AudioFrame, AudioSampleBridge
from .packet.assembler import PacketAssembler
from .packet.picker import PacketPicker
from .types import PacketType
from .video.serializer import Serializer
from .video.timing import Periods, TimingGenerator
from .video.tmds import TMDSChannel
from .video.types import RGB, Lane, Mode


class HDMITransmitter(wiring.Component):

    """
    HDMI 1.4a transmitter core.

    Clock domains (all must be provided by the parent):

    - 'pixel': pixel clock. Everything except the ends of the CDC paths.
    - 'tmds': ``config.serial_ratio`` times the pixel clock, phase-locked.
    - 'audio': audio source clock, only used if ``dvi_output=False``.

    The pixel source reads ``x`` and ``y`` and must drive ``rgb`` with the
    pixel at that position on the same cycle. Pixels outside the active
    area are ignored. Active area is the *bottom-right* of the raster.

    Audio frames are pushed on ``audio`` in the 'audio' domain. This
    stream never stalls, see :py:`AudioSampleBridge`.

    Outputs:

    - ``serial``: ``10 // serial_ratio`` bits per 'tmds' cycle for each of
      the 3 data channels and the clock channel (lane 3), LSB first.
    - ``symbols``: the parallel 10-bit TMDS symbols (ch0 blue, ch1 green,
      ch2 red), in the 'pixel' domain.
    - ``mode``, ``lanes``: what the channel encoders are about to encode,
      mostly useful for tests and debugging.
    - Status (all 'pixel' domain): ``audio_overflow`` is sticky and means
      audio frames were dropped. ``cts`` is the measured audio clock ratio,
      meaningful once ``cts_valid`` is set.

    ``timing`` may be used to override the timing profile selected by
    ``config.video_id_code``, for tiny rasters in simulation.
    """

    def __init__(self, config, *, timing=None):
        self.config = config
        self.timing = timing if timing is not None else config.timing
        self.aux_enabled = not config.dvi_output
        if self.aux_enabled and self.timing.packet_slot_capacity == 0:
            raise ValueError("timing has no room for data island packets, "
                             "use `dvi_output=True` to disable auxiliary data")
        self.frame_layout = AudioFrame(config.audio_bit_width)
        super().__init__({
            # Pixel source
            "x":              Out(range(self.timing.frame_width)),
            "y":              Out(range(self.timing.frame_height)),
            "rgb":            In(RGB),
            # Audio source
            "audio":          In(stream.Signature(self.frame_layout)),
            # Outputs
            "mode":           Out(Mode),
            "lanes":          Out(data.ArrayLayout(Lane, 3)),
            "symbols":        Out(data.ArrayLayout(10, 3)),
            "serial":         Out(data.ArrayLayout(10 // config.serial_ratio, 4)),
            # Status
            "slot_start":     Out(1),
            "packet_type":    Out(PacketType),
            "audio_level":    Out(range(config.audio_fifo_depth + 1)),
            "audio_overflow": Out(1),
            "cts":            Out(CTS_WIDTH),
            "cts_valid":      Out(1),
        })

    def elaborate(self, platform):
        m = Module()

        m.submodules.timing = tgen = TimingGenerator(self.timing, guard_enabled=self.aux_enabled)
        m.d.comb += [
            self.x.eq(tgen.x),
            self.y.eq(tgen.y),
            self.slot_start.eq(tgen.periods.packet_slot_start),
        ]

        #
        # Stage 1: everything one cycle behind the raster.
        #

        periods = Signal(Periods)
        hsync = Signal()
        vsync = Signal()
        rgb = Signal(RGB)
        m.d.pixel += [
            periods.eq(tgen.periods),
            hsync.eq(tgen.hsync),
            vsync.eq(tgen.vsync),
            rgb.eq(self.rgb),
        ]

        #
        # Auxiliary data: audio bridge -> packet picker -> assembler.
        #

        packet_data = Signal(9)

        if self.aux_enabled:
            config = self.config
            m.submodules.audio_bridge = bridge = AudioSampleBridge(
                    sample_width=config.audio_bit_width, n=config.acr_n,
                    depth=config.audio_fifo_depth)
            m.submodules.picker = picker = PacketPicker(config)
            m.submodules.assembler = assembler = PacketAssembler()

            wiring.connect(m, wiring.flipped(self.audio), bridge.i)

            m.d.comb += [
                picker.frame_start.eq(tgen.frame_start),
                picker.slot_start.eq(tgen.periods.packet_slot_start),
                picker.audio_level.eq(bridge.level),
                picker.audio_frame.eq(bridge.frame),
                picker.cts.eq(bridge.cts),
                picker.cts_valid.eq(bridge.cts_valid),
                picker.frame_counter.eq(assembler.frame_counter),
                bridge.pop.eq(picker.audio_pop),

                assembler.slot_start.eq(tgen.periods.packet_slot_start),
                assembler.island.eq(periods.data_island),
                assembler.packet_type.eq(picker.packet_type),
                assembler.packet.eq(picker.packet),
                packet_data.eq(assembler.packet_data),

                self.packet_type.eq(picker.packet_type),
                self.audio_level.eq(bridge.level),
                self.audio_overflow.eq(bridge.overflow),
                self.cts.eq(bridge.cts),
                self.cts_valid.eq(bridge.cts_valid),
            ]
        else:
            m.d.comb += self.audio.ready.eq(1)

        #
        # Lane composer
        #

        with m.If(periods.data_island_guard):
            m.d.comb += self.mode.eq(Mode.DATA_ISLAND_GUARD)
        with m.Elif(periods.data_island):
            m.d.comb += self.mode.eq(Mode.DATA_ISLAND)
        with m.Elif(periods.video_guard):
            m.d.comb += self.mode.eq(Mode.VIDEO_GUARD)
        with m.Elif(periods.video_data):
            m.d.comb += self.mode.eq(Mode.VIDEO_DATA)
        with m.Else():
            m.d.comb += self.mode.eq(Mode.CONTROL)

        lanes = self.lanes
        m.d.comb += [
            lanes[0].video.eq(rgb.b),
            lanes[1].video.eq(rgb.g),
            lanes[2].video.eq(rgb.r),
            # Preambles: CTL0 for both, CTL2 for data islands only.
            lanes[0].ctrl.eq(Cat(hsync, vsync)),
            lanes[1].ctrl.eq(Cat(periods.video_preamble | periods.data_island_preamble, Const(0, 1))),
            lanes[2].ctrl.eq(Cat(periods.data_island_preamble, Const(0, 1))),
        ]

        with m.If(periods.data_island_guard):
            m.d.comb += lanes[0].aux.eq(Cat(hsync, vsync, Const(0b11, 2)))
        with m.Else():
            m.d.comb += [
                lanes[0].aux.eq(Cat(hsync, vsync, packet_data[0], ~periods.data_island_first)),
                lanes[1].aux.eq(packet_data[1:5]),
                lanes[2].aux.eq(packet_data[5:9]),
            ]

        #
        # Channel encoders and serializer
        #

        for n in range(3):
            channel = TMDSChannel(n)
            m.submodules[f"channel{n}"] = channel
            m.d.comb += [
                channel.mode.eq(self.mode),
                channel.lane.eq(lanes[n]),
                self.symbols[n].eq(channel.tmds),
            ]

        m.submodules.serializer = serializer = Serializer(self.config.serial_ratio)
        m.d.comb += [
            serializer.symbols.eq(self.symbols),
            self.serial.eq(serializer.o),
        ]

        return m
