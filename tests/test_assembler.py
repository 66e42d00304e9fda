import random
import unittest

from amaranth import *
from amaranth.sim import *

from hdmitx.packet.assembler import PacketAssembler
from hdmitx.types import PacketType

def bch(value, nbits):
    """Software BCH parity, LSB of ``value`` shifted in first."""
    ecc = 0
    for i in range(nbits):
        bit = (value >> i) & 1
        ecc = (ecc >> 1) ^ (0x83 if (ecc ^ bit) & 1 else 0)
    return ecc

def expected_bits(header, subs):
    """The 32 9-bit words of one packet slot."""
    header_word = header | (bch(header, 24) << 24)
    sub_words = [s | (bch(s, 56) << 56) for s in subs]
    out = []
    for cursor in range(32):
        word = (header_word >> cursor) & 1
        for n in range(4):
            word |= ((sub_words[n] >> (2*cursor)) & 1) << (1+n)
            word |= ((sub_words[n] >> (2*cursor+1)) & 1) << (5+n)
        out.append(word)
    return out

class PacketAssemblerTests(unittest.TestCase):

    def send(self, packets):
        """
        Send back-to-back packets, ``(type, header, subs)``, through the
        assembler. Returns the 9-bit words of every slot and the final frame
        counter.
        """
        dut = PacketAssembler()
        slots = []
        frame_counter = None

        async def testbench(ctx):
            nonlocal frame_counter
            def load(packet_type, header, subs):
                ctx.set(dut.packet_type, packet_type)
                ctx.set(dut.packet, {"header": header, "sub": subs})
            load(*packets[0])
            ctx.set(dut.slot_start, 1)
            await ctx.tick("pixel")
            for i in range(len(packets)):
                words = []
                more = i + 1 < len(packets)
                for cursor in range(32):
                    ctx.set(dut.island, 1)
                    ctx.set(dut.slot_start, more and cursor == 31)
                    words.append(ctx.get(dut.packet_data))
                    await ctx.tick("pixel")
                slots.append(words)
                if more:
                    load(*packets[i+1])
            ctx.set(dut.island, 0)
            ctx.set(dut.slot_start, 0)
            await ctx.tick("pixel")
            frame_counter = ctx.get(dut.frame_counter)

        sim = Simulator(dut)
        sim.add_clock(1e-6, domain="pixel")
        sim.add_testbench(testbench)
        sim.run()
        return slots, frame_counter

    def test_bch(self):
        rng = random.Random(42)
        packets = [(PacketType.NULL, 0, [0]*4)]
        for _ in range(6):
            packets.append((PacketType.AVI_INFOFRAME,
                            rng.getrandbits(24),
                            [rng.getrandbits(56) for _ in range(4)]))
        slots, _ = self.send(packets)
        for (_, header, subs), words in zip(packets, slots):
            self.assertEqual(words, expected_bits(header, subs))

    def test_null_packet_is_all_zeroes(self):
        slots, _ = self.send([(PacketType.NULL, 0, [0]*4)]*2)
        self.assertEqual(slots, [[0]*32]*2)

    def test_parity_restarts(self):
        # Same packet twice: parity must not carry over from the first slot.
        packet = (PacketType.AUDIO_CLOCK_REGENERATION, 0x000001, [0x801800606d0000]*4)
        slots, _ = self.send([packet]*2)
        self.assertEqual(slots[0], slots[1])
        self.assertEqual(slots[0], expected_bits(packet[1], packet[2]))

    def test_frame_counter(self):
        audio = (PacketType.AUDIO_SAMPLE, 0x000002, [0]*4)
        other = (PacketType.AVI_INFOFRAME, 0x0d0282, [0]*4)
        _, frame_counter = self.send([audio, other, audio, other, other, audio])
        self.assertEqual(frame_counter, 3)
        # Wraps at 192 frames
        _, frame_counter = self.send([audio]*193)
        self.assertEqual(frame_counter, 1)
