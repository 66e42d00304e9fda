import unittest
from parameterized import parameterized

from amaranth import *
from amaranth.sim import *

from hdmitx.video.tmds import (CONTROL_SYMBOLS, ISLAND_GUARD_SYMBOL, TERC4_SYMBOLS,
                               VIDEO_GUARD_SYMBOLS, TMDSChannel)
from hdmitx.video.types import Mode

def decode_video(symbol):
    """Inverse of the TMDS 8b/10b video encoding."""
    q = symbol & 0xFF
    if symbol & (1 << 9):
        q ^= 0xFF
    d = q & 1
    for i in range(1, 8):
        bit = ((q >> i) ^ (q >> (i-1))) & 1
        if not symbol & (1 << 8):
            bit ^= 1
        d |= bit << i
    return d

class TMDSChannelTests(unittest.TestCase):

    def run_channel(self, channel, inputs):
        """
        Drive (mode, video, ctrl, aux) tuples one per pixel, and return the
        symbol produced for each of them.
        """
        dut = TMDSChannel(channel)
        outputs = []
        async def testbench(ctx):
            for mode, video, ctrl, aux in inputs + [(Mode.CONTROL, 0, 0, 0)]*2:
                ctx.set(dut.mode, mode)
                ctx.set(dut.lane, {"video": video, "ctrl": ctrl, "aux": aux})
                await ctx.tick("pixel")
                outputs.append(ctx.get(dut.tmds))
        sim = Simulator(dut)
        sim.add_clock(1e-6, domain="pixel")
        sim.add_testbench(testbench)
        sim.run()
        # 2 cycles of latency
        return outputs[1:len(inputs)+1]

    def test_control(self):
        inputs = [(Mode.CONTROL, 0, ctrl, 0) for ctrl in range(4)]
        self.assertEqual(self.run_channel(0, inputs), CONTROL_SYMBOLS)

    def test_terc4(self):
        inputs = [(Mode.DATA_ISLAND, 0, 0, aux) for aux in range(16)]
        self.assertEqual(self.run_channel(1, inputs), TERC4_SYMBOLS)

    @parameterized.expand([
        ["ch0", 0],
        ["ch1", 1],
        ["ch2", 2],
    ])
    def test_video_guard(self, name, channel):
        inputs = [(Mode.VIDEO_GUARD, 0xAB, 0b11, 0b1111)]*2
        self.assertEqual(self.run_channel(channel, inputs), [VIDEO_GUARD_SYMBOLS[channel]]*2)

    @parameterized.expand([
        # Channel 0 still carries {1, 1, vsync, hsync} as TERC4.
        ["ch0", 0, 0b1100, 0b1010001110],
        ["ch0_syncs", 0, 0b1111, TERC4_SYMBOLS[0b1111]],
        ["ch1", 1, 0b1100, ISLAND_GUARD_SYMBOL],
        ["ch2", 2, 0b0000, ISLAND_GUARD_SYMBOL],
    ])
    def test_island_guard(self, name, channel, aux, symbol):
        inputs = [(Mode.DATA_ISLAND_GUARD, 0, 0, aux)]
        self.assertEqual(self.run_channel(channel, inputs), [symbol])

    def test_video_decodes(self):
        pixels = [0x00, 0xFF, 0x10, 0xAA, 0x55, 0x7F, 0x80, 0xC3] * 4
        inputs = [(Mode.VIDEO_DATA, p, 0, 0) for p in pixels]
        decoded = [decode_video(s) for s in self.run_channel(2, inputs)]
        self.assertEqual(decoded, pixels)

    def test_dc_balance(self):
        # A sequence that would accumulate DC bias
        pixels = [0b11111111] * 10 + [0b00000000] * 10
        inputs = [(Mode.VIDEO_DATA, p, 0, 0) for p in pixels]
        disparity = 0
        for symbol in self.run_channel(0, inputs):
            ones = bin(symbol).count('1')
            disparity += ones - (10 - ones)
            assert abs(disparity) <= 8, f"Disparity {disparity} exceeded bounds"

    def test_bias_reset(self):
        pixel = (Mode.VIDEO_DATA, 0b10101010, 0, 0)
        skewed = [(Mode.VIDEO_DATA, 0xFF, 0, 0)]*3
        outputs = self.run_channel(0, [pixel] + skewed + [(Mode.CONTROL, 0, 0b01, 0), pixel])
        # Same symbol as the very first pixel once the control period reset the bias.
        self.assertEqual(outputs[4], CONTROL_SYMBOLS[1])
        self.assertEqual(outputs[5], outputs[0])
