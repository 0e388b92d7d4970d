#!/usr/bin/env python3
# Copyright (c) Facebook, Inc. and its affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import argparse
import logging
import sys
import threading

from tftpclient import ClientStatus, TftpClient
from tftpclient import constants


def print_session_stats(stats):
    logging.info(
        "Stats: %s %r <-> %r" % (stats.direction, stats.local_path, stats.remote_name)
    )
    logging.info("Error: %r" % stats.error)
    logging.info("Time spent: %dms" % (stats.duration() * 1e3))
    logging.info("Packets sent: %d" % stats.packets_sent)
    logging.info("Packets received: %d" % stats.packets_received)
    logging.info("Bytes transferred: %d" % stats.bytes_transferred)
    logging.info("Blocks transferred: %d" % stats.blocks_transferred)
    logging.info("Retransmits: %d" % stats.retransmits)
    logging.info("Server transfer id: %r" % (stats.peer,))


def get_arguments():
    parser = argparse.ArgumentParser()
    parser.add_argument("action", choices=["get", "put"], help="download or upload")
    parser.add_argument("server", type=str, help="server address")
    parser.add_argument("local", type=str, help="local file")
    parser.add_argument("remote", type=str, help="file name on the server")
    parser.add_argument(
        "--port", type=int, default=constants.DEFAULT_PORT, help="server port"
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=constants.DEFAULT_RETRIES,
        help="number of consecutive timeouts before giving up",
    )
    parser.add_argument(
        "--timeout_s",
        type=int,
        default=constants.DEFAULT_TIMEOUT,
        help="timeout for each packet",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser.parse_args()


def main():
    args = get_arguments()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(threadName)s %(levelname)s %(message)s",
    )
    done = threading.Event()
    results = []

    def on_status(status):
        if status == ClientStatus.READY:
            done.set()

    def on_stats(stats):
        results.append(stats)
        print_session_stats(stats)

    client = TftpClient(
        print,
        on_status,
        port=args.port,
        timeout=args.timeout_s,
        retries=args.retries,
        stats_callback=on_stats,
    )
    try:
        if args.action == "get":
            client.download(args.server, args.local, args.remote)
        else:
            client.upload(args.server, args.local, args.remote)
        done.wait()
    except KeyboardInterrupt:
        print("Aborted")
    finally:
        client.dispose()
    return 0 if results and not results[0].error else 1


if __name__ == "__main__":
    sys.exit(main())
