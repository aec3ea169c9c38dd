# Written by Sultan Qasim Khan
# Copyright (c) 2024, NCC Group plc
# Released as open source under GPLv3

import logging
from serial import Serial, SerialException
from .constants import DEFAULT_BAUDRATE, MAX_FRAME_LENGTH
from .commands import CommandEncoder
from .slip import SlipDecoder

class SnifferHW:
    """
    Serial connection to the sniffer radio.

    Owns the SLIP decoder for the connection, so a frame split across reads
    is reassembled. Only the ingestion worker should touch an instance.
    """

    def __init__(self, serport, baudrate=DEFAULT_BAUDRATE, timeout=0.1, logger=None,
                 serial_factory=Serial, max_frame=MAX_FRAME_LENGTH):
        self.serport = serport
        self.logger = logger if logger else logging.getLogger(__name__)
        self.ser = serial_factory(serport, baudrate, timeout=timeout)
        self.encoder = CommandEncoder()
        self.decoder = SlipDecoder()
        self.max_frame = max_frame

    def _send(self, frame):
        # a failed write isn't fatal, the sniffer may already be configured
        try:
            self.ser.write(frame)
        except (SerialException, OSError) as e:
            self.logger.error("Failed to send bytes to serial: %s", e)

    def cmd_scan(self, find_scan_rsp=False, find_aux=False, scan_coded=False):
        self._send(self.encoder.scan(find_scan_rsp, find_aux, scan_coded))

    def cmd_temporary_key(self, tk=0):
        self._send(self.encoder.temporary_key(tk))

    def setup_sniffer(self, find_scan_rsp=False, find_aux=False, scan_coded=False, tk=0):
        self.cmd_scan(find_scan_rsp, find_aux, scan_coded)
        self.cmd_temporary_key(tk)

    # Read whatever arrives within the port timeout and return completed frames.
    # A partial frame longer than max_frame is dropped, its END was likely lost.
    # Serial errors propagate to the caller.
    def read_frames(self, size=1024):
        data = self.ser.read(size)
        if not data:
            return []
        frames = self.decoder.feed(data)
        if len(self.decoder.frame) > self.max_frame:
            self.logger.debug("Dropping %d byte partial frame", len(self.decoder.frame))
            self.decoder.reset()
        return frames

    def close(self):
        if self.ser is not None:
            self.ser.close()
            self.ser = None
