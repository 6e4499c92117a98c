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

"""JC base class for parsers built on the jc library."""

from __future__ import annotations

import traceback
from typing import Any, Dict, List, Union

from ansible_collections.o0_o.jail.plugins.filter_utils.errors import (
    MntinfoError,
)

try:
    import jc

    HAS_JC = True
    JC_IMPORT_ERROR = None
except ImportError:
    HAS_JC = False
    JC_IMPORT_ERROR = traceback.format_exc()


class JCBase:
    """Base class for mount table parsers that use the jc library."""

    def jc(
        self,
        data: Union[str, List[str], Dict[str, Any]],
        parser: str,
        quiet: bool = True,
    ) -> Union[List[Dict[str, Any]], Dict[str, Any]]:
        """Parse command output using jc library.

        :param data: Output from command - string, list of lines,
            or command result
        :param parser: Name of the jc parser to use (e.g. 'mount',
            'proc_pid_mountinfo')
        :param quiet: If True, suppress jc parsing warnings
        :returns: Parsed data structure (list or dict depending on
            parser)
        :raises MntinfoError: If jc is not available or parsing fails
        """
        if not HAS_JC:
            raise MntinfoError(
                "The jc library is required to parse mount tables. "
                "Install it with: pip install jc",
                orig_exc=JC_IMPORT_ERROR,
            )

        jc_parsers = jc.parser_mod_list()
        if parser not in jc_parsers:
            raise MntinfoError(f"jc parser '{parser}' not found")

        raw_output = self._extract_output(data)

        try:
            return jc.parse(parser, raw_output, quiet=quiet)
        except Exception as e:
            # jc raises various exceptions, catch them all
            raise MntinfoError(f"Error parsing {parser}: {e}", orig_exc=e)

    def _extract_output(self, data: Union[str, List[str], Dict[str, Any]]) -> str:
        """Extract raw string output from various input formats.

        :param data: Input data in various formats
        :returns: Raw string output
        """
        if isinstance(data, dict):
            if "stdout" in data:
                return data["stdout"]
            return "\n".join(data.get("stdout_lines", []))
        elif isinstance(data, str):
            return data
        elif isinstance(data, list):
            return "\n".join(data)
        return ""
