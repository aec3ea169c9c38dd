# Written by Sultan Qasim Khan
# Copyright (c) 2024, NCC Group plc
# Released as open source under GPLv3

from enum import IntEnum
from .constants import (SLIP_START, SLIP_END, SLIP_ESC,
                        SLIP_ESC_START, SLIP_ESC_END, SLIP_ESC_ESC)

_unescape = {
    SLIP_ESC_START: SLIP_START,
    SLIP_ESC_END: SLIP_END,
    SLIP_ESC_ESC: SLIP_ESC
}

class SlipState(IntEnum):
    AWAITING_START = 0
    IN_FRAME = 1
    ESCAPED = 2

class SlipDecoder:
    """
    Incremental SLIP frame decoder.

    State persists between calls to feed(), so a frame may be split across
    any number of reads. Frame length is not bounded here.
    """

    def __init__(self):
        self.state = SlipState.AWAITING_START
        self.frame = bytearray()

    def reset(self):
        self.state = SlipState.AWAITING_START
        self.frame = bytearray()

    def feed_byte(self, b):
        # returns a completed frame, or None
        if self.state == SlipState.AWAITING_START:
            if b == SLIP_START:
                self.state = SlipState.IN_FRAME
            return None

        if self.state == SlipState.ESCAPED:
            # unknown escape codes pass through unchanged
            self.frame.append(_unescape.get(b, b))
            self.state = SlipState.IN_FRAME
        elif b == SLIP_END:
            frame = bytes(self.frame)
            self.reset()
            return frame
        elif b == SLIP_ESC:
            self.state = SlipState.ESCAPED
        else:
            self.frame.append(b)
        return None

    def feed(self, data):
        frames = []
        for b in data:
            frame = self.feed_byte(b)
            if frame is not None:
                frames.append(frame)
        return frames

    def __repr__(self):
        return "%s(state=%s, buffered=%d)" % (type(self).__name__,
                self.state.name, len(self.frame))

def slip_encode(payload):
    out = bytearray([SLIP_START])
    for b in payload:
        if b in (SLIP_START, SLIP_END, SLIP_ESC):
            out.append(SLIP_ESC)
            out.append(b + 1)
        else:
            out.append(b)
    out.append(SLIP_END)
    return bytes(out)

# Decode every complete frame in a standalone buffer.
# Returns (frames, bytes_consumed); a trailing partial frame is dropped.
def split_frames(data):
    decoder = SlipDecoder()
    frames = decoder.feed(data)
    return frames, len(data)
