#!/usr/bin/env python3
# Copyright (c) Facebook, Inc. and its affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import struct

from . import constants
from .exceptions import MalformedPacket


def _encode_string(value):
    return value.encode("utf-8") + b"\x00"


def _decode_string(data, offset):
    """
    Reads a NUL terminated string starting at `offset`.

    Returns:
        tuple: (decoded string, offset of the first byte after the NUL)
    """
    end = data.find(b"\x00", offset)
    if end < 0:
        raise MalformedPacket("Missing string terminator at offset %d" % offset)
    return data[offset:end].decode("utf-8", "replace"), end + 1


class Packet:
    """
    Base class of the five TFTP packet kinds. Every subclass knows its opcode
    and how to turn itself into bytes; `decode` goes the other way.
    """

    opcode = None

    def encode(self):
        raise NotImplementedError()

    @classmethod
    def from_bytes(cls, data):
        raise NotImplementedError()

    def __eq__(self, other):
        return type(self) is type(other) and vars(self) == vars(other)

    def __repr__(self):
        fields = ", ".join("%s=%r" % (k, v) for k, v in sorted(vars(self).items()))
        return "%s(%s)" % (self.__class__.__name__, fields)


class RequestPacket(Packet):
    """
           2 bytes    string    1 byte    string    1 byte
          -------------------------------------------------
          | 01/02 |  Filename  |   0  |    Mode    |   0  |
          -------------------------------------------------
    """

    def __init__(self, filename, mode=constants.MODE_BINARY):
        self.filename = filename
        self.mode = mode

    def encode(self):
        return (
            struct.pack("!H", self.opcode)
            + _encode_string(self.filename)
            + _encode_string(self.mode)
        )

    @classmethod
    def from_bytes(cls, data):
        filename, offset = _decode_string(data, 2)
        mode, _ = _decode_string(data, offset)
        return cls(filename, mode)


class ReadRequestPacket(RequestPacket):
    opcode = constants.OPCODE_RRQ


class WriteRequestPacket(RequestPacket):
    opcode = constants.OPCODE_WRQ


class DataPacket(Packet):
    """
           2 bytes     2 bytes      n bytes
          ----------------------------------
          |   03   |   Block #  |   Data    |
          ----------------------------------
    """

    opcode = constants.OPCODE_DATA

    def __init__(self, block_number, payload=b""):
        self.block_number = block_number
        self.payload = bytes(payload)

    def is_last(self):
        return len(self.payload) < constants.DEFAULT_BLKSIZE

    def encode(self):
        fmt = "!HH%ds" % len(self.payload)
        return struct.pack(fmt, self.opcode, self.block_number, self.payload)

    @classmethod
    def from_bytes(cls, data):
        if len(data) < 4:
            raise MalformedPacket("DATA packet too short: %d bytes" % len(data))
        payload = data[4:]
        if len(payload) > constants.DEFAULT_BLKSIZE:
            raise MalformedPacket("DATA payload too long: %d bytes" % len(payload))
        (block_number,) = struct.unpack("!H", data[2:4])
        return cls(block_number, payload)


class AckPacket(Packet):
    """
           2 bytes     2 bytes
          ---------------------
          |   04   |   Block #  |
          ---------------------

    The download session keeps one instance around and rewrites
    `block_number` for every block it acknowledges.
    """

    opcode = constants.OPCODE_ACK

    def __init__(self, block_number):
        self.block_number = block_number

    def encode(self):
        return struct.pack("!HH", self.opcode, self.block_number)

    @classmethod
    def from_bytes(cls, data):
        if len(data) < 4:
            raise MalformedPacket("ACK packet too short: %d bytes" % len(data))
        (block_number,) = struct.unpack("!H", data[2:4])
        return cls(block_number)


class ErrorPacket(Packet):
    """
           2 bytes     2 bytes      string    1 byte
          -----------------------------------------
          |   05   |  ErrorCode |   ErrMsg   |   0  |
          -----------------------------------------
    """

    opcode = constants.OPCODE_ERROR

    def __init__(self, error_code, error_message=""):
        self.error_code = error_code
        self.error_message = error_message

    def encode(self):
        return struct.pack("!HH", self.opcode, self.error_code) + _encode_string(
            self.error_message
        )

    @classmethod
    def from_bytes(cls, data):
        if len(data) < 4:
            raise MalformedPacket("ERROR packet too short: %d bytes" % len(data))
        (error_code,) = struct.unpack("!H", data[2:4])
        error_message, _ = _decode_string(data, 4)
        return cls(error_code, error_message)


_PACKET_TYPES = {
    constants.OPCODE_RRQ: ReadRequestPacket,
    constants.OPCODE_WRQ: WriteRequestPacket,
    constants.OPCODE_DATA: DataPacket,
    constants.OPCODE_ACK: AckPacket,
    constants.OPCODE_ERROR: ErrorPacket,
}


def encode(packet):
    """Serializes a packet to its on-the-wire representation."""
    return packet.encode()


def decode(data):
    """
    Turns a received datagram into one of the packet classes above, picking
    the class from the opcode field only.

    Raises:
        MalformedPacket: truncated datagram or unknown opcode.
    """
    if len(data) < 2:
        raise MalformedPacket("Datagram too short: %d bytes" % len(data))
    (opcode,) = struct.unpack("!H", data[:2])
    packet_type = _PACKET_TYPES.get(opcode)
    if packet_type is None:
        raise MalformedPacket("Unknown opcode %d" % opcode)
    return packet_type.from_bytes(bytes(data))
