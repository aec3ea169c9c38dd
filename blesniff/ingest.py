# Written by Sultan Qasim Khan
# Copyright (c) 2024, NCC Group plc
# Released as open source under GPLv3

import logging
import threading
from enum import IntEnum
from queue import Queue, Empty
from serial import SerialException
from .config import SnifferConfig
from .packet_decoder import decode_packet
from .sniffer_hw import SnifferHW

STOP_MSG = "thread-stop"

class IngestState(IntEnum):
    CONNECTING = 0
    STREAMING = 1
    STOPPED = 2

class IngestWorker:
    """
    Pumps bytes from the sniffer into decoded packets on a worker thread.

    Valid packets are put on `packets` in arrival order. Putting STOP_MSG on
    `control` stops the worker; it is checked between reads, so every frame
    in a read that already completed is still published. The serial
    connection is left open on stop, call close() once the worker is joined.
    """

    def __init__(self, serport, cfg=None, packets=None, control=None, logger=None,
                 hw_factory=SnifferHW):
        self.serport = serport
        self.cfg = cfg if cfg else SnifferConfig()
        self.packets = packets if packets is not None else Queue()
        self.control = control if control is not None else Queue()
        self.logger = logger if logger else logging.getLogger(__name__)
        self.hw_factory = hw_factory
        self.hw = None
        self.state = IngestState.CONNECTING
        self.thread = None

    def start(self):
        self.thread = threading.Thread(target=self.run, name="blesniff-ingest", daemon=True)
        self.thread.start()

    def stop(self, timeout=None):
        self.control.put(STOP_MSG)
        if self.thread is not None:
            self.thread.join(timeout)

    def close(self):
        if self.hw is not None:
            self.hw.close()
            self.hw = None

    def _check_msg(self, msg):
        if msg == STOP_MSG:
            return True
        self.logger.debug("Ignoring control message: %r", msg)
        return False

    # drain the control channel without blocking
    def _stop_requested(self):
        stop = False
        while True:
            try:
                msg = self.control.get_nowait()
            except Empty:
                return stop
            stop = self._check_msg(msg) or stop

    # block for up to delay seconds, returning early on a stop request
    def _wait_for_stop(self, delay):
        try:
            msg = self.control.get(timeout=delay)
        except Empty:
            return False
        return self._check_msg(msg) or self._stop_requested()

    def _connect(self):
        if self._stop_requested():
            self.state = IngestState.STOPPED
            return

        try:
            self.hw = self.hw_factory(self.serport, self.cfg.baudrate,
                    timeout=self.cfg.poll_interval, logger=self.logger)
        except (SerialException, OSError) as e:
            self.logger.error("Cannot open serial %s: %s", self.serport, e)
            if self._wait_for_stop(self.cfg.retry_backoff):
                self.state = IngestState.STOPPED
            return

        self.logger.info("Opened serial %s at %d baud", self.serport, self.cfg.baudrate)
        self.hw.setup_sniffer(self.cfg.find_scan_rsp, self.cfg.find_aux,
                self.cfg.scan_coded, self.cfg.temporary_key)
        self.state = IngestState.STREAMING

    def _stream(self):
        if self._stop_requested():
            self.state = IngestState.STOPPED
            return

        try:
            frames = self.hw.read_frames(self.cfg.read_size)
        except (SerialException, OSError) as e:
            self.logger.warning("Serial error occurs: %s", e)
            if self._wait_for_stop(self.cfg.poll_interval):
                self.state = IngestState.STOPPED
            return

        for frame in frames:
            pkt = decode_packet(frame, self.logger)
            if pkt.valid:
                self.packets.put(pkt)

    def run(self):
        while self.state != IngestState.STOPPED:
            if self.state == IngestState.CONNECTING:
                self._connect()
            else:
                self._stream()
        self.logger.info("Ingest worker stopped")
