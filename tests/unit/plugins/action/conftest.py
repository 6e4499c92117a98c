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

from __future__ import annotations

from typing import Generator
from unittest.mock import MagicMock

import pytest

from ansible_collections.o0_o.jail.plugins.action_utils import JailBase
from ansible_collections.o0_o.jail.plugins.filter_utils import (
    SizeHint,
    retrieval,
)


@pytest.fixture
def base() -> Generator[JailBase, None, None]:
    """Create a mocked JailBase instance for unit testing.

    Provides a JailBase instance with mocked Ansible dependencies.
    Tests replace ``_cmd`` or ``_low_level_execute_command`` to feed
    command output.

    :returns Generator[JailBase, None, None]: Configured JailBase
        instance with mocked dependencies
    """
    base = JailBase(
        task=MagicMock(),
        connection=MagicMock(),
        play_context=MagicMock(),
        loader=MagicMock(),
        templar=MagicMock(),
        shared_loader_obj=MagicMock(),
    )
    base._task.async_val = False
    base._task.args = {}

    yield base


@pytest.fixture(autouse=True)
def fresh_hint(monkeypatch) -> SizeHint:
    """Isolate the process wide size hint between tests."""
    hint = SizeHint()
    monkeypatch.setattr(retrieval, "SHARED_HINT", hint)
    return hint
