# Peripheral for reading HDMI transmitter status from an SoC.
#
# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0
#

from amaranth                   import *
from amaranth.lib               import wiring
from amaranth.lib.wiring        import In, Out, flipped, connect
from amaranth.lib.cdc           import FFSynchronizer, PulseSynchronizer

from amaranth_soc               import csr

from .audio.bridge              import CTS_WIDTH


class Peripheral(wiring.Component):

    """
    Read-only CSR view of an :py:`HDMITransmitter`, in the 'sync' domain.

    Registers:

    - ``status`` (0x0): ``overflow`` (sticky, audio frames were dropped),
      ``dvi`` (no data islands are sent) and ``cts_valid`` (``cts`` holds a
      measurement).
    - ``slots`` (0x1): data island packet slots per line.
    - ``audio_level`` (0x2): frames waiting in the audio sample bridge.
    - ``cts`` (0x4): latest measured Audio Clock Regeneration CTS.
    - ``n`` (0x8): Audio Clock Regeneration N.

    ``audio_level``, ``cts`` and ``cts_valid`` are snapshotted together in
    the 'pixel' domain and handed over with a request/acknowledge pair of
    pulses, so a read never mixes bits from two different values.
    """

    class StatusReg(csr.Register, access="r"):
        overflow:  csr.Field(csr.action.R, unsigned(1))
        dvi:       csr.Field(csr.action.R, unsigned(1))
        cts_valid: csr.Field(csr.action.R, unsigned(1))

    class SlotsReg(csr.Register, access="r"):
        slots: csr.Field(csr.action.R, unsigned(8))

    class LevelReg(csr.Register, access="r"):
        level: csr.Field(csr.action.R, unsigned(16))

    class ClockRegenReg(csr.Register, access="r"):
        value: csr.Field(csr.action.R, unsigned(32))

    def __init__(self, *, hdmi):
        self.hdmi = hdmi

        regs = csr.Builder(addr_width=4, data_width=8)

        self._status      = regs.add("status",      self.StatusReg(),     offset=0x0)
        self._slots       = regs.add("slots",       self.SlotsReg(),      offset=0x1)
        self._audio_level = regs.add("audio_level", self.LevelReg(),      offset=0x2)
        self._cts         = regs.add("cts",         self.ClockRegenReg(), offset=0x4)
        self._n           = regs.add("n",           self.ClockRegenReg(), offset=0x8)

        self._bridge = csr.Bridge(regs.as_memory_map())

        super().__init__({
            "bus": In(csr.Signature(addr_width=regs.addr_width, data_width=regs.data_width)),
        })
        self.bus.memory_map = self._bridge.bus.memory_map

    def elaborate(self, platform):
        m = Module()
        m.submodules.bridge = self._bridge

        connect(m, flipped(self.bus), self._bridge.bus)

        hdmi = self.hdmi
        config = hdmi.config

        # 'pixel' -> 'sync'
        overflow = Signal()
        m.submodules += FFSynchronizer(hdmi.audio_overflow, overflow, o_domain="sync")

        # Multi-bit status: the 'pixel' side latches on request, the 'sync'
        # side copies on acknowledge and then asks again.
        m.submodules.snapshot_req = req = PulseSynchronizer(i_domain="sync", o_domain="pixel")
        m.submodules.snapshot_ack = ack = PulseSynchronizer(i_domain="pixel", o_domain="sync")

        level_pixel = Signal.like(hdmi.audio_level)
        cts_pixel = Signal(CTS_WIDTH)
        cts_valid_pixel = Signal()
        with m.If(req.o):
            m.d.pixel += [
                level_pixel.eq(hdmi.audio_level),
                cts_pixel.eq(hdmi.cts),
                cts_valid_pixel.eq(hdmi.cts_valid),
            ]
        m.d.pixel += ack.i.eq(req.o)

        audio_level = Signal.like(hdmi.audio_level)
        cts = Signal(CTS_WIDTH)
        cts_valid = Signal()
        pending = Signal()
        m.d.comb += req.i.eq(~pending)
        with m.If(~pending):
            m.d.sync += pending.eq(1)
        with m.If(ack.o):
            m.d.sync += [
                pending.eq(0),
                audio_level.eq(level_pixel),
                cts.eq(cts_pixel),
                cts_valid.eq(cts_valid_pixel),
            ]

        m.d.comb += [
            self._status.f.overflow.r_data.eq(overflow),
            self._status.f.dvi.r_data.eq(int(config.dvi_output)),
            self._status.f.cts_valid.r_data.eq(cts_valid),
            self._slots.f.slots.r_data.eq(0 if config.dvi_output else hdmi.timing.packet_slot_capacity),
            self._audio_level.f.level.r_data.eq(audio_level),
            self._cts.f.value.r_data.eq(cts),
            self._n.f.value.r_data.eq(0 if config.dvi_output else config.acr_n),
        ]

        return m
