# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""Serialize packets into data island bits, with BCH error correction."""

from amaranth import *
from amaranth.lib import wiring
from amaranth.lib.wiring import In, Out

from ..modeline import PACKET_WIDTH
from ..types import PacketType
from . import Packet
from .audio_sample import IEC60958_FRAMES

HEADER_BITS    = 24 # BCH(32,24)
SUBPACKET_BITS = 56 # BCH(64,56)
ECC_BITS       = 8


def next_ecc(ecc, bit):
    """
    Shift one bit into a BCH parity register, generator x^8 + x^7 + x^6 + 1.
    """
    return (ecc >> 1) ^ Mux(ecc[0] ^ bit, 0b10000011, 0)


class PacketAssembler(wiring.Component):

    """
    Turn the selected :py:`Packet` into 9 bits per pixel over a 32-pixel
    packet slot, appending BCH parity to the header and each subpacket.

    ``packet_data`` on pixel ``cursor`` (0..31) of a slot is:

    - bit 0: header bit ``cursor``. Bits 24..31 are header parity.
    - bits 1..4: bit ``2*cursor`` of subpackets 0..3.
    - bits 5..8: bit ``2*cursor+1`` of subpackets 0..3.
      Bits 56..63 of each subpacket are its parity.

    Parity registers restart from zero on every packet.

    ``slot_start`` is the raster-side strobe, one cycle ahead of ``island``
    which marks pixels that are actually sent. ``packet`` must be stable
    for the whole slot.

    This component also owns the IEC 60958 frame counter, which advances
    once per Audio Sample packet and wraps every 192 frames.
    """

    slot_start:    In(1)
    island:        In(1)
    packet_type:   In(PacketType)
    packet:        In(Packet)
    packet_data:   Out(9)
    frame_counter: Out(range(IEC60958_FRAMES))

    def elaborate(self, platform):
        m = Module()

        cursor = Signal(range(PACKET_WIDTH))
        with m.If(self.slot_start):
            m.d.pixel += cursor.eq(0)
        with m.Elif(self.island):
            m.d.pixel += cursor.eq(cursor + 1)

        first = cursor == 0
        header_bits = HEADER_BITS
        sub_pairs = SUBPACKET_BITS // 2

        #
        # Header, BCH(32,24)
        #

        header_ecc = Signal(ECC_BITS)
        header_ecc_now = Mux(first, 0, header_ecc)
        header_bit = self.packet.header.bit_select(cursor, 1)
        with m.If(cursor < header_bits):
            m.d.comb += self.packet_data[0].eq(header_bit)
            m.d.pixel += header_ecc.eq(next_ecc(header_ecc_now, header_bit))
        with m.Else():
            m.d.comb += self.packet_data[0].eq(
                header_ecc_now.bit_select((cursor - header_bits)[:3], 1))
            m.d.pixel += header_ecc.eq(header_ecc_now)

        #
        # Subpackets, BCH(64,56), 2 bits per pixel
        #

        for n in range(4):
            sub = self.packet.sub[n]
            sub_ecc = Signal(ECC_BITS, name=f"sub{n}_ecc")
            sub_ecc_now = Mux(first, 0, sub_ecc)
            even = sub.bit_select(cursor * 2, 1)
            odd = sub.bit_select(cursor * 2 + 1, 1)
            with m.If(cursor < sub_pairs):
                m.d.comb += [
                    self.packet_data[1+n].eq(even),
                    self.packet_data[5+n].eq(odd),
                ]
                m.d.pixel += sub_ecc.eq(next_ecc(next_ecc(sub_ecc_now, even), odd))
            with m.Else():
                parity_at = (cursor - sub_pairs)[:2] * 2
                m.d.comb += [
                    self.packet_data[1+n].eq(sub_ecc_now.bit_select(parity_at, 1)),
                    self.packet_data[5+n].eq(sub_ecc_now.bit_select(parity_at + 1, 1)),
                ]
                m.d.pixel += sub_ecc.eq(sub_ecc_now)

        #
        # IEC 60958 frame counter
        #

        with m.If(self.island & (cursor == PACKET_WIDTH - 1) &
                  (self.packet_type == PacketType.AUDIO_SAMPLE)):
            with m.If(self.frame_counter == IEC60958_FRAMES - 1):
                m.d.pixel += self.frame_counter.eq(0)
            with m.Else():
                m.d.pixel += self.frame_counter.eq(self.frame_counter + 1)

        return m
