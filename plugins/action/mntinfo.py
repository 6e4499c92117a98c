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

from typing import Any, Dict, Optional

from ansible.errors import AnsibleActionFail
from ansible_collections.o0_o.jail.plugins.action_utils import JailBase
from ansible_collections.o0_o.jail.plugins.filter_utils import (
    CallerContext,
    MntinfoError,
    MntinfoHandler,
    MountTable,
    MountTableParser,
    parse_report,
    resolve_context,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.retrieval import (
    ENCODING,
    ENCODING_ERRORS,
)

# Commands used to read the mount table, keyed by source
SOURCES = {
    "libxo": ["mount", "--libxo", "json", "-v"],
    "mountinfo": ["cat", "/proc/self/mountinfo"],
    "mount": ["mount"],
    "sysctl": ["sysctl", "-n", "security.jail.mntinfojson"],
}

# Tried in order when source=auto
AUTO_SOURCES = ("libxo", "mountinfo", "mount")


class ActionModule(JailBase):
    """
    Report the mounts visible to a jail as a JSON document.

    This action plugin reads the mount table of the target host,
    resolves the jail the report is made for and renders the report
    with the same size query and fetch steps the kernel sysctl uses.
    """

    TRANSFERS_FILES = False
    _requires_connection = True
    _supports_check_mode = True
    _supports_async = False
    _supports_diff = False

    def run(
        self,
        tmp: Optional[str] = None,
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Main entry point for the action plugin.

        :param Optional[str] tmp: Temporary directory path (unused
            in modern Ansible)
        :param Optional[Dict[str, Any]] task_vars: Task variables
            dictionary
        :returns Dict[str, Any]: Result with the report and its size
        """
        task_vars = task_vars or {}
        tmp = None  # unused in modern Ansible

        result = super().run(tmp, task_vars)

        argument_spec = {
            "source": {
                "type": "str",
                "default": "auto",
                "choices": ["auto"] + sorted(SOURCES),
            },
            "jail": {"type": "str"},
            "jail_root": {"type": "str"},
            "enforce_statfs": {"type": "int", "choices": [0, 1, 2]},
            "size_only": {"type": "bool", "default": False},
            "max_length": {"type": "int"},
        }

        validation_result, new_module_args = self.validate_argument_spec(
            argument_spec=argument_spec,
            mutually_exclusive=[
                ("jail", "jail_root"),
                ("jail", "enforce_statfs"),
            ],
        )

        self._task.args.update(new_module_args)

        max_length = self._task.args.get("max_length")
        if max_length is not None and max_length < 0:
            raise AnsibleActionFail("max_length must not be negative")

        table = self._get_mount_table(task_vars)
        context = self._get_context(task_vars)
        handler = MntinfoHandler(table)

        result["changed"] = False

        if self._task.args.get("size_only"):
            response = handler.handle(context)
            result.update({"needed": response.needed, "length": 0})
            return result

        response = handler.fetch(context, oldlen=max_length)
        text = response.data.decode(ENCODING, ENCODING_ERRORS)
        result.update(
            {
                "needed": response.needed,
                "length": response.length,
                "truncated": response.truncated,
                "mntinfo": text,
            }
        )
        if not response.truncated:
            try:
                result["mounted"] = parse_report(text)
            except MntinfoError as e:
                raise AnsibleActionFail(str(e))

        return result

    def _get_mount_table(self, task_vars: Dict[str, Any]) -> MountTable:
        """Read the mount table of the target host.

        :param task_vars: Task variables dictionary
        :returns: MountTable
        :raises AnsibleActionFail: If no source yields a mount table
        """
        source = self._task.args.get("source", "auto")
        candidates = AUTO_SOURCES if source == "auto" else (source,)

        errors = []
        for candidate in candidates:
            cmd_result = self._cmd(SOURCES[candidate], task_vars=task_vars)
            if cmd_result.get("rc") != 0:
                errors.append(
                    f"{candidate}: {cmd_result.get('stderr', '').strip()}"
                )
                continue
            try:
                table = self._parse_source(candidate, cmd_result)
            except MntinfoError as e:
                errors.append(f"{candidate}: {e}")
                continue
            self._display.vvv(
                f"Read {len(table)} mounts from {candidate} source"
            )
            return table

        raise AnsibleActionFail(
            "Unable to read the mount table: " + "; ".join(errors)
        )

    def _parse_source(
        self, source: str, cmd_result: Dict[str, Any]
    ) -> MountTable:
        parser = MountTableParser()
        if source == "libxo":
            return parser.parse_libxo(cmd_result)
        if source == "mountinfo":
            return parser.parse_mountinfo(cmd_result)
        if source == "sysctl":
            return parser.parse_mntinfo(cmd_result)
        return parser.parse_mount(cmd_result)

    def _get_context(self, task_vars: Dict[str, Any]) -> CallerContext:
        """Resolve the caller context from the task arguments.

        A jail that cannot be found yields a context without access,
        which produces an empty report.

        :param task_vars: Task variables dictionary
        :returns: CallerContext
        """
        jail = self._task.args.get("jail")
        if jail:
            params = self._jail_params(jail, task_vars=task_vars)
            if params is None:
                self._display.warning(
                    f"Jail {jail} not found, reporting no mounts"
                )
                return resolve_context(credential=False)
            try:
                return resolve_context(params)
            except MntinfoError as e:
                raise AnsibleActionFail(str(e))

        jail_root = self._task.args.get("jail_root") or ""
        enforce_statfs = self._task.args.get("enforce_statfs")
        if enforce_statfs is None:
            # A bare jail_root scopes paths like a default jail
            enforce_statfs = 1 if jail_root else 0
        if not jail_root and not enforce_statfs:
            return resolve_context()
        return resolve_context(
            {"path": jail_root, "enforce_statfs": enforce_statfs}
        )
