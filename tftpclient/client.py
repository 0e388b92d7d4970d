#!/usr/bin/env python3
# Copyright (c) Facebook, Inc. and its affiliates.

# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from concurrent.futures import ThreadPoolExecutor
from enum import Enum
import logging
import os
import threading

from . import constants
from .session import DownloadSession, UploadSession


class ClientStatus(Enum):
    READY = "ready"
    DEALING = "dealing"


class TftpClient:
    def __init__(
        self,
        logger,
        status_listener,
        port=constants.DEFAULT_PORT,
        timeout=constants.DEFAULT_TIMEOUT,
        retries=constants.DEFAULT_RETRIES,
        max_workers=None,
        stats_callback=None,
    ):
        """
        Entry point for front ends. Transfers run on a pool of worker
        threads; everything a caller gets to know about them goes through the
        two callbacks.

        Args:
            logger (callable): gets one human readable line at a time. Calls
                are serialized, so lines from concurrent transfers never mix.

            status_listener (callable): gets a `ClientStatus`. `DEALING` is
                sent when a transfer is requested and `READY` when it ends,
                whatever the outcome.

            port (int): server port requests are sent to.

            timeout (int): seconds to wait for each datagram.

            retries (int): consecutive timeouts after which a transfer is
                given up.

            max_workers (int): size of the worker pool, see
                `concurrent.futures.ThreadPoolExecutor` (None means
                min(32, cpu count + 4)). The pool does not grow past it:
                extra transfers wait in a queue until a worker is free, and
                `dispose()` cancels the ones still waiting.

            stats_callback (callable): passed to every session, gets a
                `SessionStats` at the end of each transfer.

        Note:
            There is no count of active transfers: with two transfers running,
            the first one to finish reports `READY`.
        """
        self._logger = logger
        self._status_listener = status_listener
        self._port = port
        self._timeout = timeout
        self._retries = retries
        self._stats_callback = stats_callback
        self._log_lock = threading.Lock()
        self._sessions = set()
        self._sessions_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="tftp-session"
        )
        self._should_stop = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.dispose()

    def log(self, line):
        """Forwards one line to the logger callback and to `logging`."""
        logging.info(line)
        with self._log_lock:
            try:
                self._logger(line)
            except Exception as e:
                logging.exception("Exception raised by the logger callback: %s" % e)

    def _set_status(self, status):
        try:
            self._status_listener(status)
        except Exception as e:
            logging.exception("Exception raised by the status listener: %s" % e)

    def upload(self, server_address, local_file, remote_name):
        """
        Uploads `local_file` to `server_address` as `remote_name`. Returns
        right away, the transfer happens in a worker thread.
        """
        self._set_status(ClientStatus.DEALING)
        self.log("Upload: %s -> %s" % (os.path.basename(local_file), remote_name))
        session = UploadSession(
            **self._session_args(server_address, local_file, remote_name)
        )
        self._submit(session)

    def download(self, server_address, local_file, remote_name):
        """
        Downloads `remote_name` from `server_address` into `local_file`.
        Returns right away, the transfer happens in a worker thread.
        """
        self._set_status(ClientStatus.DEALING)
        self.log("Download: %s -> %s" % (remote_name, os.path.basename(local_file)))
        session = DownloadSession(
            **self._session_args(server_address, local_file, remote_name)
        )
        self._submit(session)

    def _session_args(self, server_address, local_file, remote_name):
        return {
            "server_addr": (server_address, self._port),
            "local_path": local_file,
            "remote_name": remote_name,
            "logger": self.log,
            "timeout": self._timeout,
            "retries": self._retries,
            "stats_callback": self._stats_callback,
        }

    def _submit(self, session):
        with self._sessions_lock:
            disposed = self._should_stop
            if not disposed:
                self._sessions.add(session)
        if disposed:
            self.log("Client disposed, request dropped")
            self._set_status(ClientStatus.READY)
            return
        try:
            future = self._executor.submit(self._run_session, session)
        except RuntimeError as e:
            # the pool was shut down by a concurrent dispose()
            self._forget(session)
            self.log("Client disposed, request dropped: %s" % e)
            self._set_status(ClientStatus.READY)
            return
        future.add_done_callback(lambda f: self._on_done(f, session))

    def _run_session(self, session):
        try:
            session.run()
        finally:
            self._forget(session)
            self._set_status(ClientStatus.READY)

    def _on_done(self, future, session):
        # cancelled before starting, _run_session never ran
        if future.cancelled():
            self._forget(session)
            self._set_status(ClientStatus.READY)

    def _forget(self, session):
        with self._sessions_lock:
            self._sessions.discard(session)

    def active_sessions(self):
        with self._sessions_lock:
            return len(self._sessions)

    def dispose(self):
        """
        Stops the client. Running sessions are asked to stop before their
        next block, queued ones are cancelled, and the call does not wait for
        any of them. Calling it more than once is harmless.
        """
        with self._sessions_lock:
            if self._should_stop:
                return
            self._should_stop = True
            sessions = list(self._sessions)
        for session in sessions:
            session.stop()
        try:
            self._executor.shutdown(wait=False, cancel_futures=True)
        except Exception as e:
            logging.exception("Dispose error: %s" % e)
            self.log("Dispose error:%s" % e)
