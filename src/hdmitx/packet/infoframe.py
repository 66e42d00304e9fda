# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

"""
InfoFrame packets (CEA-861-D Section 6, HDMI 1.4a Section 8.2).

InfoFrames carry static information about the stream. Their contents are
fully known at elaboration time, so each one is built as a list of bytes
in Python and presented as a constant :py:`Packet`.
"""

import enum

from amaranth import *
from amaranth.lib import wiring
from amaranth.lib.wiring import Out

from ..types import PacketType
from . import Packet

# Total payload bytes in one packet (checksum + 27 data bytes)
PAYLOAD_BYTES = 28
SUBPACKET_BYTES = 7


class PictureAspectRatio(enum.IntEnum):
    NO_DATA    = 0b00
    ASPECT_4_3 = 0b01
    ASPECT_16_9 = 0b10

    def from_vic(video_id_code):
        if video_id_code in (1, 2, 17):
            return PictureAspectRatio.ASPECT_4_3
        # 64:27 formats have no AVI 'M' encoding.
        if video_id_code in (105, 107):
            return PictureAspectRatio.NO_DATA
        return PictureAspectRatio.ASPECT_16_9


class InfoFrame(wiring.Component):

    """
    Base for constant InfoFrame packets.

    Subclasses provide ``packet_type``, ``version`` and ``length`` and
    implement :py:`payload`, which returns PB1..PB<length>.
    """

    packet_type = None
    version     = None
    length      = None

    o: Out(Packet)

    def payload(self):
        raise NotImplementedError()

    def header(self):
        return [self.packet_type.value, self.version, self.length]

    def packet_bytes(self):
        """
        PB0..PB27. PB0 is the checksum, chosen such that all header and
        payload bytes add up to 0 (mod 256).
        """
        body = self.payload()
        assert len(body) == self.length
        checksum = (-(sum(self.header()) + sum(body))) & 0xff
        return [checksum] + body + [0] * (PAYLOAD_BYTES - 1 - self.length)

    def subpackets(self):
        pb = self.packet_bytes()
        return [int.from_bytes(bytes(pb[n:n+SUBPACKET_BYTES]), "little")
                for n in range(0, PAYLOAD_BYTES, SUBPACKET_BYTES)]

    def elaborate(self, platform):
        m = Module()
        m.d.comb += self.o.header.eq(int.from_bytes(bytes(self.header()), "little"))
        for n, sub in enumerate(self.subpackets()):
            m.d.comb += self.o.sub[n].eq(sub)
        return m


class AVIInfoFrame(InfoFrame):

    """
    Auxiliary Video Information InfoFrame (CEA-861-D Section 6.4).

    Always advertises full-range RGB, no bar or active format data, no
    overscan information and no pixel repetition.
    """

    packet_type = PacketType.AVI_INFOFRAME
    version     = 2
    length      = 13

    def __init__(self, video_id_code, it_content=True):
        self.video_id_code = video_id_code
        self.it_content = it_content
        super().__init__()

    def payload(self):
        rgb_or_ycbcr   = 0b00 # RGB
        active_format  = 0    # No AFD present
        bar_info       = 0b00
        scan_info      = 0b00
        colorimetry    = 0b00
        aspect         = PictureAspectRatio.from_vic(self.video_id_code)
        same_as_aspect = 0b1000
        extended_color = 0b000
        rgb_quant      = 0b00 # Default for this VIC
        scaling        = 0b00
        ycc_quant      = 0b00
        content_type   = 0b00
        repetition     = 0b0000
        return [
            (rgb_or_ycbcr << 5) | (active_format << 4) | (bar_info << 2) | scan_info,
            (colorimetry << 6) | (aspect << 4) | same_as_aspect,
            (int(self.it_content) << 7) | (extended_color << 4) | (rgb_quant << 2) | scaling,
            self.video_id_code & 0x7f,
            (ycc_quant << 6) | (content_type << 4) | repetition,
            # No bar info (PB6..PB13)
            0, 0, 0, 0, 0, 0, 0, 0,
        ]


class AudioInfoFrame(InfoFrame):

    """
    Audio InfoFrame (CEA-861-D Section 6.6).

    2-channel LPCM, front left / front right. Coding type, sample rate and
    sample size all 'refer to stream header', which for LPCM is the IEC 60958
    channel status carried in the Audio Sample packets.
    """

    packet_type = PacketType.AUDIO_INFOFRAME
    version     = 1
    length      = 10

    def payload(self):
        coding_type   = 0b0000 # Refer to stream header
        channel_count = 0b001  # 2 channels
        sample_freq   = 0b000  # Refer to stream header
        sample_size   = 0b00   # Refer to stream header
        speakers      = 0x00   # FL, FR
        downmix_inh   = 0
        level_shift   = 0b0000
        lfe_playback  = 0b00
        return [
            (coding_type << 4) | channel_count,
            (sample_freq << 2) | sample_size,
            0,
            speakers,
            (downmix_inh << 7) | (level_shift << 3) | lfe_playback,
            0, 0, 0, 0, 0,
        ]


class SourceProductDescriptionInfoFrame(InfoFrame):

    """
    Source Product Description InfoFrame (CEA-861-D Section 6.5).

    ``vendor_name`` (up to 8) and ``product_description`` (up to 16) are
    7-bit ASCII, zero padded. ``source_device_information`` is the
    CEA-861 source device code (e.g. 0x01 'Digital STB', 0x09 'PC general').
    """

    packet_type = PacketType.SPD_INFOFRAME
    version     = 1
    length      = 25

    def __init__(self, vendor_name, product_description="", source_device_information=0x00):
        self.vendor_name = vendor_name
        self.product_description = product_description
        self.source_device_information = source_device_information
        super().__init__()

    def payload(self):
        vendor = list(self.vendor_name.encode("ascii").ljust(8, b"\0"))
        product = list(self.product_description.encode("ascii").ljust(16, b"\0"))
        return vendor + product + [self.source_device_information]
