#!/usr/bin/env python3
# Copyright (c) Facebook, Inc. and its affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import unittest

from tftpclient import constants, factory
from tftpclient.exceptions import MalformedPacket
from tftpclient.packets import AckPacket, DataPacket, ReadRequestPacket


class testPacketFactory(unittest.TestCase):
    def testBuildPacket(self):
        self.assertEqual(
            factory.build_packet(b"\x00\x03\x00\x01foo"), DataPacket(1, b"foo")
        )
        with self.assertRaises(MalformedPacket):
            factory.build_packet(b"\x00\x09")

    def testBuildRequests(self):
        rrq = factory.build_rrq("pxelinux.0")
        self.assertEqual(rrq.opcode, constants.OPCODE_RRQ)
        self.assertEqual(rrq.mode, constants.MODE_BINARY)
        self.assertEqual(rrq, ReadRequestPacket("pxelinux.0", "octet"))
        wrq = factory.build_wrq("b.bin")
        self.assertEqual(wrq.opcode, constants.OPCODE_WRQ)
        self.assertEqual(wrq.filename, "b.bin")
        self.assertEqual(wrq.mode, "octet")

    def testBuildAckIsMutable(self):
        ack = factory.build_ack(1)
        ack.block_number = 2
        self.assertEqual(ack, AckPacket(2))
        self.assertEqual(ack.encode(), b"\x00\x04\x00\x02")

    def testNextBlockNumber(self):
        self.assertEqual(factory.next_block_number(0), 1)
        self.assertEqual(factory.next_block_number(1), 2)
        self.assertEqual(factory.next_block_number(32766), 32767)
        # never reaches the wrap threshold
        self.assertEqual(factory.next_block_number(32767), 1)

    def testBlockNumbersNeverUseUpperHalf(self):
        block_number, seen = 0, set()
        for _ in range(constants.BLOCK_NUMBER_WRAP + 10):
            block_number = factory.next_block_number(block_number)
            seen.add(block_number)
        self.assertEqual(seen, set(range(1, constants.BLOCK_NUMBER_WRAP)))
