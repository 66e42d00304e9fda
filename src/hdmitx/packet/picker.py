# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

from amaranth import *
from amaranth.lib import wiring
from amaranth.lib.wiring import In, Out

from ..audio.bridge import CTS_WIDTH, AudioFrame
from ..types import PacketType
from . import Packet
from .acr import AudioClockRegeneration
from .audio_sample import IEC60958_FRAMES, AudioSamplePacket
from .infoframe import (AudioInfoFrame, AVIInfoFrame,
                        SourceProductDescriptionInfoFrame)


class PacketPicker(wiring.Component):

    """
    Decide which packet is sent in each data island packet slot, and
    present its contents.

    On every ``slot_start`` (one cycle before the slot is sent), the first
    of these that applies is picked:

    1. An audio frame is buffered (``audio_level > 0``): Audio Sample.
       The frame is popped and latched for the duration of the slot.
    2. No Audio Clock Regeneration sent this frame, and ``cts_valid``:
       ACR. The latest ``cts`` is latched for the duration of the slot.
       Until the first CTS is measured, no ACR is sent at all.
    3. An InfoFrame not yet sent this frame, in order: AVI, Audio, and
       Source Product Description if ``vendor_name`` is set.
    4. Null.

    The 'sent' flags are cleared on ``frame_start``, so every frame
    carries exactly one ACR (once ``cts_valid``) and one of each InfoFrame
    as long as it has enough packet slots, and audio is never delayed by
    any of them.

    ``packet`` is a combinational selection of the provider outputs by
    the registered ``packet_type``. Everything here is in the 'pixel' domain.
    """

    def __init__(self, config):
        self.config = config
        self.infoframes = [
            AVIInfoFrame(config.video_id_code, it_content=config.it_content),
            AudioInfoFrame(),
        ]
        if config.vendor_name is not None:
            self.infoframes.append(SourceProductDescriptionInfoFrame(
                config.vendor_name,
                product_description=config.product_description,
                source_device_information=config.source_device_information))
        self.frame_layout = AudioFrame(config.audio_bit_width)
        super().__init__({
            "frame_start":   In(1),
            "slot_start":    In(1),
            # From the audio sample bridge.
            "audio_level":   In(range(config.audio_fifo_depth + 1)),
            "audio_frame":   In(self.frame_layout),
            "audio_pop":     Out(1),
            "cts":           In(CTS_WIDTH),
            "cts_valid":     In(1),
            # From the assembler.
            "frame_counter": In(range(IEC60958_FRAMES)),
            # Selected packet.
            "packet_type":   Out(PacketType),
            "packet":        Out(Packet),
        })

    def elaborate(self, platform):
        m = Module()

        m.submodules.acr = acr = AudioClockRegeneration(self.config.acr_n)
        m.submodules.audio_sample = audio_sample = AudioSamplePacket(
                self.config.audio_bit_width, self.config.audio_rate)
        for n, infoframe in enumerate(self.infoframes):
            m.submodules[f"infoframe{n}"] = infoframe

        # Held stable for the duration of a slot.
        sample_r = Signal(self.frame_layout)
        cts_r = Signal(CTS_WIDTH)
        m.d.comb += [
            audio_sample.frame.eq(sample_r),
            audio_sample.frame_counter.eq(self.frame_counter),
            acr.cts.eq(cts_r),
        ]

        clock_regen_sent = Signal()
        infoframe_sent = Signal(len(self.infoframes))

        with m.If(self.frame_start):
            m.d.pixel += [
                clock_regen_sent.eq(0),
                infoframe_sent.eq(0),
            ]

        with m.If(self.slot_start):
            with m.If(self.audio_level > 0):
                m.d.comb += self.audio_pop.eq(1)
                m.d.pixel += [
                    self.packet_type.eq(PacketType.AUDIO_SAMPLE),
                    sample_r.eq(self.audio_frame),
                ]
            with m.Elif(~clock_regen_sent & self.cts_valid):
                m.d.pixel += [
                    self.packet_type.eq(PacketType.AUDIO_CLOCK_REGENERATION),
                    clock_regen_sent.eq(1),
                    cts_r.eq(self.cts),
                ]
            for n, infoframe in enumerate(self.infoframes):
                with m.Elif(~infoframe_sent[n]):
                    m.d.pixel += [
                        self.packet_type.eq(infoframe.packet_type),
                        infoframe_sent[n].eq(1),
                    ]
            with m.Else():
                m.d.pixel += self.packet_type.eq(PacketType.NULL)

        # Null packets are all zeroes.
        with m.Switch(self.packet_type):
            with m.Case(PacketType.AUDIO_SAMPLE):
                m.d.comb += self.packet.eq(audio_sample.o)
            with m.Case(PacketType.AUDIO_CLOCK_REGENERATION):
                m.d.comb += self.packet.eq(acr.o)
            for infoframe in self.infoframes:
                with m.Case(infoframe.packet_type):
                    m.d.comb += self.packet.eq(infoframe.o)

        return m
