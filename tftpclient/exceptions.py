#!/usr/bin/env python3
# Copyright (c) Facebook, Inc. and its affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.


class TftpError(Exception):
    """Base class for everything that can go wrong during a transfer."""


class ReceiveTimeout(TftpError):
    """No usable answer from the server within the retry budget."""


class ProtocolViolation(TftpError):
    """
    A well formed packet we did not expect: wrong opcode, wrong block number
    or unknown transfer id. Sessions discard these and keep waiting.
    """


class MalformedPacket(ProtocolViolation):
    """A datagram that could not be decoded as a TFTP packet."""


class ServerError(TftpError):
    """The server sent an ERROR packet, which ends the transfer."""

    def __init__(self, error_code, error_message):
        self.error_code = error_code
        self.error_message = error_message
        super().__init__(
            "errcode:%d, errMsg:%s" % (error_code, error_message)
        )


class TransferIOError(TftpError):
    """Local file or socket failure."""


class TransferCancelled(TftpError):
    """The client was disposed while the transfer was still running."""
