# vim: ts=4:sw=4:sts=4:et:ft=python
# -*- mode: python; tab-width: 4; indent-tabs-mode: nil; -*-
#
# GNU General Public License v3.0+
# SPDX-License-Identifier: GPL-3.0-or-later
# (see COPYING or https://www.gnu.org/licenses/gpl-3.0.txt)
#
# Copyright (c) 2025 oØ.o (@o0-o)
#
# This file is part of the o0_o.jail Ansible Collection.

"""
Two phase retrieval of the mount report.

A caller first asks for the size of the report, allocates a buffer and
then fetches the data, the same way ``sysctl(3)`` is used with a NULL
``oldp``. Between the two calls the mount table may change, so the size
remembered by :class:`SizeHint` only pre-sizes the next fetch buffer;
the buffer grows when the hint turns out to be short.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from ansible.utils.display import Display
from ansible_collections.o0_o.jail.plugins.filter_utils.context import (
    CallerContext,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.errors import (
    MntinfoError,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.mntinfo import (
    build_json,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.mount_table import (
    MountTable,
)

display = Display()

# One page, used until the first report has been sized
DEFAULT_HINT = 4096

# Undecodable bytes from the OS round-trip unchanged
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"


def encode_text(text: str) -> bytes:
    """Encode report text for a sink.

    Never raises. Lone surrogates outside the escape range, which
    ``surrogateescape`` rejects, fall back to ``surrogatepass``.

    :param text: Report fragment
    :returns: Encoded bytes
    """
    try:
        return text.encode(ENCODING, ENCODING_ERRORS)
    except UnicodeEncodeError:
        return text.encode(ENCODING, "surrogatepass")


class OutputChannel(Protocol):
    def write(self, data: bytes) -> Any: ...


class SizeHint:
    """Advisory length of the most recent report.

    Shared between concurrent requests; the last writer wins. The
    value is only used to pre-size buffers and is never trusted for
    correctness.
    """

    def __init__(self, default: int = DEFAULT_HINT) -> None:
        self._lock = threading.Lock()
        self._value = default

    def get(self) -> int:
        with self._lock:
            return self._value

    def set(self, value: int) -> None:
        with self._lock:
            self._value = value


SHARED_HINT = SizeHint()


class CountingSink:
    """Sink that discards the report and counts its encoded length."""

    def __init__(self) -> None:
        self.length = 0

    def write(self, text: str) -> None:
        self.length += len(encode_text(text))


class BufferSink:
    """Byte buffer allocated up front that doubles when it runs out."""

    def __init__(self, capacity: int = DEFAULT_HINT) -> None:
        self._buf = bytearray(max(capacity, 1))
        self._len = 0

    def __len__(self) -> int:
        return self._len

    @property
    def capacity(self) -> int:
        return len(self._buf)

    def write(self, text: str) -> None:
        data = encode_text(text)
        end = self._len + len(data)
        if end > len(self._buf):
            size = len(self._buf)
            while size < end:
                size *= 2
            display.vvvv(
                f"Extending mntinfo buffer from {len(self._buf)} to "
                f"{size} bytes"
            )
            self._buf.extend(bytes(size - len(self._buf)))
        self._buf[self._len:end] = data
        self._len = end

    def getvalue(self) -> bytes:
        return bytes(self._buf[: self._len])


@dataclass(frozen=True)
class MntinfoResult:
    """Outcome of one retrieval request.

    ``needed`` is always the full length of the report. ``length`` is
    the number of bytes handed to the caller, zero for a size query.
    """

    needed: int
    length: int = 0
    data: Optional[bytes] = None

    @property
    def truncated(self) -> bool:
        return self.data is not None and self.length < self.needed


class MntinfoHandler:
    """Serve mount reports for one mount table.

    :param table: Mount table to report on
    :param hint: Size hint cell, defaults to the process wide
        ``SHARED_HINT``
    """

    def __init__(
        self, table: MountTable, hint: Optional[SizeHint] = None
    ) -> None:
        self.table = table
        self.hint = hint if hint is not None else SHARED_HINT

    def query_size(self, context: CallerContext) -> int:
        """Compute the report length without producing it.

        :param context: Caller context
        :returns: Length of the report in bytes
        """
        sink = CountingSink()
        build_json(sink, context, self.table)
        self.hint.set(sink.length)
        return sink.length

    def fetch(
        self,
        context: CallerContext,
        out: Optional[OutputChannel] = None,
        oldlen: Optional[int] = None,
    ) -> MntinfoResult:
        """Produce the report and copy it to the caller.

        A buffer shorter than the report is filled completely and the
        result still carries the full length in ``needed``.

        :param context: Caller context
        :param out: Object with a ``write(bytes)`` method receiving the
            data; errors it raises propagate unchanged
        :param oldlen: Maximum number of bytes to deliver, None for all
        :returns: MntinfoResult
        :raises MntinfoError: If ``oldlen`` is negative
        """
        if oldlen is not None and oldlen < 0:
            raise MntinfoError(f"Invalid buffer length: {oldlen}")

        sink = BufferSink(self.hint.get())
        build_json(sink, context, self.table)
        data = sink.getvalue()
        self.hint.set(len(data))

        if oldlen is not None and oldlen < len(data):
            display.vvv(
                f"mntinfo buffer of {oldlen} bytes is short, "
                f"{len(data)} needed"
            )
            data_out = data[:oldlen]
        else:
            data_out = data

        if out is not None:
            out.write(data_out)

        return MntinfoResult(
            needed=len(data), length=len(data_out), data=data_out
        )

    def handle(
        self,
        context: CallerContext,
        out: Optional[OutputChannel] = None,
        oldlen: Optional[int] = None,
    ) -> MntinfoResult:
        """Single entry point dispatching on the request shape.

        Without an output channel and without a length the request is a
        size query; anything else fetches.
        """
        if out is None and oldlen is None:
            return MntinfoResult(needed=self.query_size(context))
        return self.fetch(context, out=out, oldlen=oldlen)
