# Copyright (c) 2024 S. Holzapfel <me@sebholzapfel.com>
#
# SPDX-License-Identifier: CERN-OHL-S-2.0

import enum

from amaranth import *
from amaranth.lib import enum as amaranth_enum


class AudioRate(enum.IntEnum):
    """
    Audio sample rates (Fs) that may be carried in Audio Sample packets.
    """
    FS_32KHZ    = 32000
    FS_44_1KHZ  = 44100
    FS_48KHZ    = 48000
    FS_88_2KHZ  = 88200
    FS_96KHZ    = 96000
    FS_176_4KHZ = 176400
    FS_192KHZ   = 192000

    def default():
        return AudioRate.FS_44_1KHZ

    def all():
        return list(AudioRate)

    def acr_n(self):
        """
        Audio Clock Regeneration 'N', from the "Other" column of HDMI 1.4a
        tables 7-1, 7-2 and 7-3. This is always a multiple of 128.
        """
        if self % 125 == 0:
            return 16 * int(self) // 125
        return 32 * int(self) // 225

    def iec60958_code(self):
        """
        Sampling frequency field of the IEC 60958-3 consumer channel status
        block (bits 24..27, bit 24 in the LSB).
        """
        return {
            AudioRate.FS_44_1KHZ:  0b0000,
            AudioRate.FS_48KHZ:    0b0010,
            AudioRate.FS_32KHZ:    0b0011,
            AudioRate.FS_88_2KHZ:  0b1000,
            AudioRate.FS_96KHZ:    0b1010,
            AudioRate.FS_176_4KHZ: 0b1100,
            AudioRate.FS_192KHZ:   0b1110,
        }[self]


class PacketType(amaranth_enum.IntEnum, shape=unsigned(8)):
    """
    Data island packet types (HB0), see HDMI 1.4a Table 5-8.
    """
    NULL                     = 0x00
    AUDIO_CLOCK_REGENERATION = 0x01
    AUDIO_SAMPLE             = 0x02
    AVI_INFOFRAME            = 0x82
    SPD_INFOFRAME            = 0x83
    AUDIO_INFOFRAME          = 0x84
