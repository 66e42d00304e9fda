import unittest

from amaranth import *
from amaranth.sim import *

from hdmitx.config import HDMIConfig
from hdmitx.packet.picker import PacketPicker
from hdmitx.types import PacketType

class PacketPickerTests(unittest.TestCase):

    def run_picker(self, config, testbench):
        dut = PacketPicker(config)
        async def bench(ctx):
            ctx.set(dut.cts_valid, 1)
            await testbench(ctx, dut)
        sim = Simulator(dut)
        sim.add_clock(1e-6, domain="pixel")
        sim.add_testbench(bench)
        sim.run()

    async def slot(self, ctx, dut):
        """Strobe ``slot_start``, return the pop strobe and the picked packet type."""
        ctx.set(dut.slot_start, 1)
        pop = ctx.get(dut.audio_pop)
        await ctx.tick("pixel")
        ctx.set(dut.slot_start, 0)
        return pop, PacketType(ctx.get(dut.packet_type))

    def test_once_per_frame(self):
        picked = []
        headers = []
        async def testbench(ctx, dut):
            for _ in range(5):
                _, packet_type = await self.slot(ctx, dut)
                picked.append(packet_type)
                headers.append(ctx.get(dut.packet.header))
        self.run_picker(HDMIConfig(), testbench)
        self.assertEqual(picked, [
            PacketType.AUDIO_CLOCK_REGENERATION,
            PacketType.AVI_INFOFRAME,
            PacketType.AUDIO_INFOFRAME,
            PacketType.NULL,
            PacketType.NULL,
        ])
        self.assertEqual(headers, [0x000001, 0x0d0282, 0x0a0184, 0, 0])

    def test_spd(self):
        picked = []
        async def testbench(ctx, dut):
            for _ in range(5):
                _, packet_type = await self.slot(ctx, dut)
                picked.append(packet_type)
        self.run_picker(HDMIConfig(vendor_name="hdmitx"), testbench)
        self.assertEqual(picked[3:], [PacketType.SPD_INFOFRAME, PacketType.NULL])

    def test_audio_first(self):
        async def testbench(ctx, dut):
            ctx.set(dut.audio_level, 2)
            ctx.set(dut.audio_frame, {"left": 5, "right": -5})
            pop, packet_type = await self.slot(ctx, dut)
            self.assertEqual(pop, 1)
            self.assertEqual(packet_type, PacketType.AUDIO_SAMPLE)
            # The frame stays latched once the source moves on.
            ctx.set(dut.audio_frame, {"left": 6, "right": -6})
            await ctx.tick("pixel")
            self.assertEqual(ctx.get(dut.packet.header) & 0xff, PacketType.AUDIO_SAMPLE)
            self.assertEqual(ctx.get(dut.packet.sub[0]) & 0xffffff, 5 << 8)
            # Nothing to pop once the FIFO is empty.
            ctx.set(dut.audio_level, 0)
            pop, packet_type = await self.slot(ctx, dut)
            self.assertEqual(pop, 0)
            self.assertEqual(packet_type, PacketType.AUDIO_CLOCK_REGENERATION)
        self.run_picker(HDMIConfig(), testbench)

    def test_frame_start(self):
        async def testbench(ctx, dut):
            for _ in range(4):
                await self.slot(ctx, dut)
            _, packet_type = await self.slot(ctx, dut)
            self.assertEqual(packet_type, PacketType.NULL)
            ctx.set(dut.frame_start, 1)
            await ctx.tick("pixel")
            ctx.set(dut.frame_start, 0)
            _, packet_type = await self.slot(ctx, dut)
            self.assertEqual(packet_type, PacketType.AUDIO_CLOCK_REGENERATION)
        self.run_picker(HDMIConfig(), testbench)

    def test_cts_latched(self):
        async def testbench(ctx, dut):
            ctx.set(dut.cts, 1000)
            _, packet_type = await self.slot(ctx, dut)
            self.assertEqual(packet_type, PacketType.AUDIO_CLOCK_REGENERATION)
            ctx.set(dut.cts, 2000)
            await ctx.tick("pixel")
            sub = ctx.get(dut.packet.sub[0])
            # SB1..SB3: CTS big endian
            self.assertEqual([(sub >> s) & 0xff for s in (8, 16, 24)], [0x00, 0x03, 0xe8])
        self.run_picker(HDMIConfig(), testbench)

    def test_no_cts_yet(self):
        picked = []
        async def testbench(ctx, dut):
            ctx.set(dut.cts_valid, 0)
            for _ in range(3):
                _, packet_type = await self.slot(ctx, dut)
                picked.append(packet_type)
            # Sent in the first free slot once measured, even mid-frame.
            ctx.set(dut.cts_valid, 1)
            for _ in range(2):
                _, packet_type = await self.slot(ctx, dut)
                picked.append(packet_type)
        self.run_picker(HDMIConfig(), testbench)
        self.assertEqual(picked, [
            PacketType.AVI_INFOFRAME,
            PacketType.AUDIO_INFOFRAME,
            PacketType.NULL,
            PacketType.AUDIO_CLOCK_REGENERATION,
            PacketType.NULL,
        ])
