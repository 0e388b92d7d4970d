#!/usr/bin/env python3
# Copyright (c) Facebook, Inc. and its affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from . import constants
from .packets import (
    AckPacket,
    DataPacket,
    ReadRequestPacket,
    WriteRequestPacket,
    decode,
)


def build_packet(datagram):
    """Builds a typed packet out of a datagram read from the socket."""
    return decode(datagram)


def build_rrq(filename, mode=constants.MODE_BINARY):
    return ReadRequestPacket(filename, mode)


def build_wrq(filename, mode=constants.MODE_BINARY):
    return WriteRequestPacket(filename, mode)


def build_data(block_number, payload):
    return DataPacket(block_number, payload)


def build_ack(block_number):
    return AckPacket(block_number)


def next_block_number(block_number):
    """
    Returns the block number following `block_number`. The counter goes back
    to 1 instead of reaching `constants.BLOCK_NUMBER_WRAP`.
    """
    block_number += 1
    if block_number >= constants.BLOCK_NUMBER_WRAP:
        block_number = 1
    return block_number
