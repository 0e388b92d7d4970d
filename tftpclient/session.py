#!/usr/bin/env python3
# Copyright (c) Facebook, Inc. and its affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import logging
import os
import socket
import time

from . import constants
from .exceptions import (
    ProtocolViolation,
    ReceiveTimeout,
    ServerError,
    TftpError,
    TransferCancelled,
    TransferIOError,
)
from .factory import (
    build_ack,
    build_data,
    build_packet,
    build_rrq,
    build_wrq,
    next_block_number,
)
from .packets import AckPacket, DataPacket, ErrorPacket


class SessionStats:
    """
    SessionStats represents a digest of what happened during a transfer.
    Data inside the object gets populated while the session runs and the
    object is handed to the `stats_callback` once the session is over.

    `error` is an empty dict for a successful transfer, otherwise it holds
    `error_kind` and `error_message` (and `error_code` for errors reported
    by the server).
    """

    def __init__(self, direction, server_addr, local_path, remote_name):
        self.direction = direction
        self.server_addr = server_addr
        self.local_path = local_path
        self.remote_name = remote_name
        self.peer = None
        self.error = {}
        self.start_time = time.time()
        self.packets_sent = 0
        self.packets_received = 0
        self.bytes_transferred = 0
        self.blocks_transferred = 0
        self.retransmits = 0

    def duration(self):
        return time.time() - self.start_time


class BaseSession:
    direction = None

    def __init__(
        self,
        server_addr,
        local_path,
        remote_name,
        logger=logging.info,
        timeout=constants.DEFAULT_TIMEOUT,
        retries=constants.DEFAULT_RETRIES,
        stats_callback=None,
    ):
        """
        Class that drives a single file transfer with a TFTP server. A session
        is used once: `run()` performs the whole exchange in the calling
        thread and releases the socket and the file before returning.

        Note:
            Do not use this class as is, use `UploadSession` or
            `DownloadSession`, which implement `transfer()`.

        Args:
            server_addr (tuple): (host, port) the request is sent to. The host
                can be an IPv4/IPv6 address or a name.

            local_path (string): the local file to read from or write to.

            remote_name (string): the file name on the server.

            logger (callable): gets every human readable progress line.

            timeout (int): seconds to wait for each datagram.

            retries (int): consecutive timeouts after which the transfer is
                given up.

            stats_callback (callable): a callable that will be executed at the
                end of the session. It gets passed an instance of the
                `SessionStats` class.
        """
        self._server_addr = server_addr
        self._local_path = local_path
        self._remote_name = remote_name
        self._logger = logger
        self._timeout = timeout
        self._retries = retries
        self._stats_callback = stats_callback
        self._should_stop = False
        self._socket = None
        self._request_addr = None
        # server transfer id, learnt from the first accepted reply
        self._peer = None
        self._file = None
        self._last_sent = None
        self._stats = SessionStats(
            self.direction, server_addr, local_path, remote_name
        )

    @property
    def stats(self):
        return self._stats

    def _log(self, fmt, *args):
        self._logger("%s:%s" % (self.direction.capitalize(), fmt % args))

    def _get_socket(self):
        if self._socket is None:
            host, port = self._server_addr
            family, _, _, _, sockaddr = socket.getaddrinfo(
                host, port, 0, socket.SOCK_DGRAM
            )[0]
            self._request_addr = sockaddr
            self._socket = socket.socket(family, socket.SOCK_DGRAM)
            self._socket.settimeout(self._timeout)
        return self._socket

    def _send(self, packet):
        listener = self._get_socket()
        listener.sendto(packet.encode(), self._peer or self._request_addr)
        self._last_sent = packet
        self._stats.packets_sent += 1

    def _receive(self):
        """
        Reads one datagram and decodes it.

        Returns:
            tuple: (packet, address of the sender)

        Raises:
            socket.timeout: nothing arrived within the timeout.
            ProtocolViolation: undecodable datagram or unknown sender.
        """
        data, peer = self._get_socket().recvfrom(constants.MAX_PACKET_SIZE)
        self._stats.packets_received += 1
        if self._peer is not None and peer != self._peer:
            raise ProtocolViolation(
                "Unexpected peer: %s, expected %s" % (peer, self._peer)
            )
        return build_packet(data), peer

    def _wait_for(self, accept):
        """
        Receive loop shared by both directions.

        `accept` is called with every decoded packet other than ERROR, and
        raises `ProtocolViolation` for packets the session is not waiting
        for. Those are dropped without touching the retry counter, as are
        undecodable datagrams. Each timeout resends the last packet until
        `self._retries` consecutive timeouts have happened.

        Note:
            Since dropped packets never count as retries, a server that keeps
            answering with the wrong block number holds the session forever.

        Returns:
            Packet: the first accepted packet.

        Raises:
            ServerError: the server answered with an ERROR packet.
            ReceiveTimeout: the retry budget is exhausted.
        """
        retry_count = 0
        while True:
            try:
                packet, peer = self._receive()
                if isinstance(packet, ErrorPacket):
                    raise ServerError(packet.error_code, packet.error_message)
                accept(packet)
            except socket.timeout:
                retry_count += 1
                if retry_count >= self._retries:
                    raise ReceiveTimeout("Receive time out")
                self._log("Receive time out")
                self._logger("Retrying:retry count:%d..." % retry_count)
                self._retransmit()
                continue
            except ProtocolViolation as e:
                self._log("%s", e)
                self._logger("Ignore err packet...")
                continue
            if self._peer is None:
                self._peer = peer
                self._stats.peer = peer
            return packet

    def _retransmit(self):
        if self._last_sent is None:
            return
        self._send(self._last_sent)
        self._stats.retransmits += 1

    def _check_opcode(self, packet, packet_type):
        if not isinstance(packet, packet_type):
            raise ProtocolViolation(
                "opcode err:%d(%s)"
                % (packet.opcode, constants.OPCODE_NAMES[packet.opcode])
            )

    def transfer(self):
        """
        Performs the actual exchange. This method has to be overridden and
        must raise a `TftpError` (or an `OSError`) on failure.
        """
        raise NotImplementedError()

    def run(self):
        """
        Runs the transfer. Any failure is logged, recorded in the stats and
        stops here.

        Returns:
            bool: True if the transfer completed.
        """
        try:
            self.transfer()
        except TftpError as e:
            self._abort(e)
        except OSError as e:
            self._abort(TransferIOError(str(e)))
        except Exception as e:
            logging.exception("Caught exception: %s." % e)
            self._abort(e)
        finally:
            self._close()
        return not self._stats.error

    def stop(self):
        """
        Asks the session to stop. The flag is only looked at between two
        blocks, a receive already in progress runs until its timeout.
        """
        self._should_stop = True

    def _check_running(self):
        if self._should_stop:
            raise TransferCancelled("Stopped before completion")

    def _abort(self, error):
        self._stats.error = {
            "error_kind": error.__class__.__name__,
            "error_message": str(error),
        }
        if isinstance(error, ServerError):
            self._stats.error["error_code"] = error.error_code
        self._log("err:%s", error)
        try:
            self._on_abort()
        except OSError as e:
            logging.exception("Exception raised when cleaning up: %s" % e)

    def _on_abort(self):
        """Called after a failed transfer, before the session is closed."""

    def _close_file(self):
        if self._file is not None and not self._file.closed:
            logging.debug("Closing %s", self._local_path)
            self._file.close()

    def _close(self):
        """
        Closes the file and the socket and calls the stats callback. Runs at
        the end of every session, whatever happened.
        """
        try:
            self._close_file()
        except OSError as e:
            logging.exception("Exception raised when closing file: %s" % e)
        if self._socket is not None:
            logging.debug("Closing socket")
            self._socket.close()
        if self._stats_callback is None:
            return
        try:
            self._stats_callback(self._stats)
        except Exception as e:
            logging.exception("Exception raised when calling stats callback: %s" % e)


class UploadSession(BaseSession):
    """Sends `local_path` to the server as `remote_name` (WRQ)."""

    direction = "upload"

    def _read_block(self):
        """
        Reads the next block from the file, asking again until the block is
        full or the file is exhausted.
        """
        block = self._file.read(constants.DEFAULT_BLKSIZE)
        while len(block) < constants.DEFAULT_BLKSIZE:
            more = self._file.read(constants.DEFAULT_BLKSIZE - len(block))
            if not more:
                break
            block += more
        return block

    def _accept_request_ack(self, packet):
        # the block number of the WRQ ack is not checked
        self._check_opcode(packet, AckPacket)

    def _ack_checker(self, block_number):
        def accept(packet):
            self._check_opcode(packet, AckPacket)
            self._log(
                "Receive response opcode:%d(ACK), blockNo:%d",
                packet.opcode,
                packet.block_number,
            )
            if packet.block_number != block_number:
                raise ProtocolViolation(
                    "block number err:cur:%d, expect:%d"
                    % (packet.block_number, block_number)
                )

        return accept

    def transfer(self):
        self._log("Open file:%s", os.path.abspath(self._local_path))
        self._file = open(self._local_path, "rb")

        request = build_wrq(self._remote_name)
        self._log("Send request WRQ<%d> Mode<%s>", request.opcode, request.mode)
        self._send(request)
        ack = self._wait_for(self._accept_request_ack)
        self._log(
            "Receive response opcode:%d(ACK), blockNo:%d",
            ack.opcode,
            ack.block_number,
        )

        block_number = 0
        while True:
            self._check_running()
            block_number = next_block_number(block_number)
            data = build_data(block_number, self._read_block())
            self._log(
                "Send data packet:%d(DATA), blockNo:%d", data.opcode, block_number
            )
            self._send(data)
            self._wait_for(self._ack_checker(block_number))
            self._stats.blocks_transferred += 1
            self._stats.bytes_transferred += len(data.payload)
            if data.is_last():
                break

        self._log(
            "Finish file<%s> -> server file<%s>",
            os.path.abspath(self._local_path),
            self._remote_name,
        )


class DownloadSession(BaseSession):
    """
    Fetches `remote_name` from the server into `local_path` (RRQ). A failed
    download removes whatever was written to `local_path`.
    """

    direction = "download"

    def _data_checker(self, block_number):
        def accept(packet):
            self._check_opcode(packet, DataPacket)
            self._log("Receive blockNo:%d", packet.block_number)
            if packet.block_number != block_number:
                raise ProtocolViolation(
                    "block number err:cur:%d, expect:%d"
                    % (packet.block_number, block_number)
                )

        return accept

    def transfer(self):
        request = build_rrq(self._remote_name)
        self._log("Send request RRQ<%d> Mode<%s>", request.opcode, request.mode)
        self._send(request)
        self._file = open(self._local_path, "wb")

        expected = 1
        ack = None
        while True:
            self._check_running()
            data = self._wait_for(self._data_checker(expected))
            self._file.write(data.payload)
            self._stats.blocks_transferred += 1
            self._stats.bytes_transferred += len(data.payload)

            if ack is None:
                ack = build_ack(expected)
            else:
                ack.block_number = expected
            self._log("Send ACK, blockNo:%d", ack.block_number)
            self._send(ack)

            if data.is_last():
                break
            expected = next_block_number(expected)

        self._file.flush()
        self._log(
            "Finish server file<%s> -> file<%s>",
            self._remote_name,
            os.path.abspath(self._local_path),
        )

    def _on_abort(self):
        if self._file is None:
            return
        self._close_file()
        if os.path.exists(self._local_path):
            logging.debug("Removing partial download %s", self._local_path)
            os.remove(self._local_path)
