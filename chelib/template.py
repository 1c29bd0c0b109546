"""Tournament template: the process-wide cache and a skeleton synthesizer."""

import logging
import struct
import threading

from .constants import (
    TOURNAMENT_TAG, TOURNAMENT_FILE_SIZE, HEADER_SIZE, HEADER_SIZE_OFFSET,
    VERSION_OFFSET, VERSION_WIDTH, DEFAULT_VERSION, DEFAULT_TOURNAMENT_NAME,
    TOURNAMENT_NAME_OFFSETS, FILL_MARKER_OFFSET, UNINITIALIZED_FILL,
    MAX_TEAMS, PROGRAM_ENTRIES,
    TEMPLATE_FLOAT_OFFSET, TEMPLATE_FLOATS, TEMPLATE_FLAG_START, TEMPLATE_FLAG_END,
)
from .errors import InvalidTemplateError, TemplateMissingError
from .layout import read_tag, write_u32, write_fixed_string, slot_offset, program_entry_offset

logger = logging.getLogger(__name__)


def check_template(buffer):
    """Raise InvalidTemplateError unless `buffer` is a full-size CEMD file."""
    tag = read_tag(buffer)
    if tag != TOURNAMENT_TAG:
        raise InvalidTemplateError(f"Template must be a {TOURNAMENT_TAG!r} file, got tag {tag!r}")
    if len(buffer) != TOURNAMENT_FILE_SIZE:
        raise InvalidTemplateError(
            f"Template must be {TOURNAMENT_FILE_SIZE} bytes, got {len(buffer)}")


class TemplateCache:
    """Holds the template buffer once one has been loaded.

    The first successful load wins; later loads return the cached buffer.
    """

    def __init__(self):
        self._buffer = None
        self._lock = threading.Lock()

    @property
    def loaded(self):
        return self._buffer is not None

    def load(self, buffer):
        check_template(buffer)
        with self._lock:
            if self._buffer is None:
                self._buffer = bytes(buffer)
                logger.info("Tournament template loaded (%d bytes)", len(buffer))
            else:
                logger.debug("Template already loaded, keeping the first one")
            return self._buffer

    def get(self):
        if self._buffer is None:
            raise TemplateMissingError("No tournament template loaded")
        return self._buffer

    def clear(self):
        with self._lock:
            self._buffer = None


template_cache = TemplateCache()


def load_template(buffer):
    return template_cache.load(buffer)


def get_template():
    return template_cache.get()


def load_template_file(path):
    with open(path, 'rb') as f:
        return load_template(f.read())


def synthesize_template(name=DEFAULT_TOURNAMENT_NAME, version=DEFAULT_VERSION):
    """Build a skeleton tournament file with the header defaults the game writes.

    Slots and the block table are left zeroed except that every program entry
    carries the uninitialized fill, so generated team-file slots receive the
    default program entries.
    """
    buf = bytearray(TOURNAMENT_FILE_SIZE)
    buf[0:4] = TOURNAMENT_TAG
    write_u32(buf, HEADER_SIZE_OFFSET, HEADER_SIZE)
    buf[VERSION_OFFSET:VERSION_OFFSET + VERSION_WIDTH] = version.encode('ascii').ljust(VERSION_WIDTH, b'\x00')
    for offset in TOURNAMENT_NAME_OFFSETS:
        write_fixed_string(buf, offset, name)
    write_u32(buf, FILL_MARKER_OFFSET, UNINITIALIZED_FILL)
    struct.pack_into('<3f', buf, TEMPLATE_FLOAT_OFFSET, *TEMPLATE_FLOATS)
    buf[TEMPLATE_FLAG_START:TEMPLATE_FLAG_END] = b'\x01' * (TEMPLATE_FLAG_END - TEMPLATE_FLAG_START)

    for i in range(MAX_TEAMS):
        for e in range(PROGRAM_ENTRIES):
            write_u32(buf, slot_offset(i) + program_entry_offset(e), UNINITIALIZED_FILL)
    return bytes(buf)
