#!/usr/bin/env python3
# Copyright (c) Facebook, Inc. and its affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# TFTP opcodes
OPCODE_RRQ = 1
OPCODE_WRQ = 2
OPCODE_DATA = 3
OPCODE_ACK = 4
OPCODE_ERROR = 5

OPCODE_NAMES = {
    OPCODE_RRQ: "RRQ",
    OPCODE_WRQ: "WRQ",
    OPCODE_DATA: "DATA",
    OPCODE_ACK: "ACK",
    OPCODE_ERROR: "ERROR",
}

# TFTP modes (encodings). Only octet is ever requested by this client.
MODE_BINARY = "octet"

# TFTP error codes
ERR_UNDEFINED = 0  # Not defined, see error msg (if any) - RFC 1350.
ERR_FILE_NOT_FOUND = 1  # File not found - RFC 1350.
ERR_ACCESS_VIOLATION = 2  # Access violation - RFC 1350.
ERR_DISK_FULL = 3  # Disk full or allocation exceeded - RFC 1350.
ERR_ILLEGAL_OPERATION = 4  # Illegal TFTP operation - RFC 1350.
ERR_UNKNOWN_TRANSFER_ID = 5  # Unknown transfer ID - RFC 1350.
ERR_FILE_EXISTS = 6  # File already exists - RFC 1350.
ERR_NO_SUCH_USER = 7  # No such user - RFC 1350.

# Block numbers are 16 bit on the wire, but this client never goes past
# 32767: the counter restarts from 1 once it would reach this value.
BLOCK_NUMBER_WRAP = 32768
MAX_BLOCK_NUMBER = 65535

# this is the default blksize as defined by RFC 1350
DEFAULT_BLKSIZE = 512

# receive buffer, large enough for a full DATA packet
MAX_PACKET_SIZE = 1024

# Client defaults
DEFAULT_PORT = 69
DEFAULT_TIMEOUT = 5  # seconds
DEFAULT_RETRIES = 4
