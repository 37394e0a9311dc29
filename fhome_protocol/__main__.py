#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import sys
import argparse
import json
import asyncio
import logging
from signal import SIGINT, SIGTERM

from fhome_protocol.internal_types import *

from fhome_protocol import (
    __version__ as pkg_version,
    FhomeClient,
    FhomeFrame,
    CellValue,
    parse_cell_values,
  )
from fhome_protocol.constants import ACTION_STATUS_TOUCHES_CHANGED
from fhome_protocol.config import FhomeClientConfig, load_client_config

class CmdExitError(RuntimeError):
    exit_code: int

    def __init__(self, exit_code: int, msg: Optional[str]=None):
        if msg is None:
            msg = f"Command exited with return code {exit_code}"
        super().__init__(msg)
        self.exit_code = exit_code

class ArgparseExitError(CmdExitError):
    pass

class NoExitArgumentParser(argparse.ArgumentParser):
    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, sys.stderr)
        raise ArgparseExitError(status, message)

def cell_value_summary(cell_value: CellValue) -> JsonableDict:
    return {
        "cell_id": cell_value.object_id,
        "display_type": cell_value.display_type,
        "value": cell_value.value,
        "value_str": cell_value.value_str,
    }

class CommandHandler:
    _argv: Optional[Sequence[str]]
    _parser: argparse.ArgumentParser
    _args: argparse.Namespace
    _provide_traceback: bool = True

    def __init__(self, argv: Optional[Sequence[str]]=None):
        self._argv = argv

    def get_config(self, system: bool=True, user: bool=True) -> FhomeClientConfig:
        return load_client_config(config_file=self._args.config_file, system=system, user=user)

    async def connect(self) -> FhomeClient:
        config = self.get_config()
        try:
            config.verify()
        except ValueError as e:
            raise CmdExitError(2, f"incomplete configuration: {e}") from e
        return await config.connect()

    async def cmd_bare(self) -> int:
        print("A command is required", file=sys.stderr)
        return 1

    async def cmd_config(self) -> int:
        system: bool = not self._args.user_only
        user: bool = not self._args.system_only
        config = self.get_config(system=system, user=user)
        print(json.dumps(config.describe(), indent=2, sort_keys=True))
        return 0

    async def cmd_watch(self) -> int:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        if not self._provide_traceback:
            for signal in (SIGINT, SIGTERM):
                loop.add_signal_handler(signal, stop_event.set)
        try:
            async with await self.connect() as client:
                async for frame in client.iter_messages(cancel_event=stop_event):
                    self.print_frame(frame)
        finally:
            if not self._provide_traceback:
                for signal in (SIGINT, SIGTERM):
                    loop.remove_signal_handler(signal)
        return 0

    def print_frame(self, frame: FhomeFrame) -> None:
        summary: JsonableDict = {
            "action_name": frame.action_name,
            "request_token": frame.request_token,
            "status": frame.status,
        }
        if frame.action_name == ACTION_STATUS_TOUCHES_CHANGED:
            summary["cell_values"] = [ cell_value_summary(cv) for cv in parse_cell_values(frame) ]
        print(json.dumps(summary, sort_keys=True))
        sys.stdout.flush()

    async def cmd_status(self) -> int:
        async with await self.connect() as client:
            frame = await client.get_status_snapshot()
        cell_values = parse_cell_values(frame)
        print(json.dumps([ cell_value_summary(cv) for cv in cell_values ], indent=2, sort_keys=True))
        return 0

    async def cmd_toggle(self) -> int:
        cell_id: int = self._args.cell_id
        async with await self.connect() as client:
            await client.toggle(cell_id)
        return 0

    async def cmd_set(self) -> int:
        cell_id: int = self._args.cell_id
        percent: int = self._args.percent
        async with await self.connect() as client:
            await client.set_lighting(cell_id, percent)
        return 0

    async def cmd_set_temp(self) -> int:
        cell_id: int = self._args.cell_id
        celsius: float = self._args.celsius
        async with await self.connect() as client:
            await client.set_temperature(cell_id, celsius)
        return 0

    async def cmd_version(self) -> int:
        print(pkg_version)
        return 0

    async def arun(self) -> int:
        """Run the fhome command-line tool with provided arguments

        Args:
            argv (Optional[Sequence[str]], optional):
                A list of commandline arguments (NOT including the program as argv[0]!),
                or None to use sys.argv[1:]. Defaults to None.

        Returns:
            int: The exit code that would be returned if this were run as a standalone command.
        """
        parser = NoExitArgumentParser(prog="fhome", description="Control an F&Home home automation system.")


        # ======================= Main command

        self._parser = parser
        parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                            help='Display detailed exception information')
        parser.add_argument('--log-level', dest='log_level', default='warning',
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='''The logging level to use. Default: warning''')
        parser.add_argument('-c', '--config', dest='config_file', default=None,
                            help='''The configuration file to use. Default: ~/.config/fhome/config.json, then
                                    /etc/fhome/config.json, then the FHOME_* environment variables''')
        parser.set_defaults(func=self.cmd_bare)

        subparsers = parser.add_subparsers(
                            title='Commands',
                            description='Valid commands',
                            help='Additional help available with "<command-name> -h"')


        # ======================= config

        parser_config = subparsers.add_parser('config', description="Display the effective configuration (without passwords)")
        config_group = parser_config.add_mutually_exclusive_group()
        config_group.add_argument('--system', dest='system_only', action='store_true', default=False,
                            help='Only consider the system-wide configuration file')
        config_group.add_argument('--user', dest='user_only', action='store_true', default=False,
                            help="Only consider the user's configuration file")
        parser_config.set_defaults(func=self.cmd_config)

        # ======================= watch

        parser_watch = subparsers.add_parser('watch', description="Print every message received from the resource until interrupted")
        parser_watch.set_defaults(func=self.cmd_watch)

        # ======================= status

        parser_status = subparsers.add_parser('status', description="Print the current value of every cell")
        parser_status.set_defaults(func=self.cmd_status)

        # ======================= toggle

        parser_toggle = subparsers.add_parser('toggle', description="Toggle a binary cell (light, gate, etc.)")
        parser_toggle.add_argument('cell_id', type=int, help='The cell ID')
        parser_toggle.set_defaults(func=self.cmd_toggle)

        # ======================= set

        parser_set = subparsers.add_parser('set', description="Set the level of a dimmable light")
        parser_set.add_argument('cell_id', type=int, help='The cell ID')
        parser_set.add_argument('percent', type=int, help='The level, 0..100')
        parser_set.set_defaults(func=self.cmd_set)

        # ======================= set-temp

        parser_set_temp = subparsers.add_parser('set-temp', description="Set a thermostat set point")
        parser_set_temp.add_argument('cell_id', type=int, help='The cell ID')
        parser_set_temp.add_argument('celsius', type=float, help='The temperature in °C, 12..28')
        parser_set_temp.set_defaults(func=self.cmd_set_temp)

        # ======================= version

        parser_version = subparsers.add_parser('version',
                                description='''Display version information.''')
        parser_version.set_defaults(func=self.cmd_version)

        # =========================================================

        try:
            args = parser.parse_args(self._argv)
        except ArgparseExitError as ex:
            return ex.exit_code
        traceback: bool = args.traceback
        self._provide_traceback = traceback

        try:
            logging.basicConfig(
                level=logging.getLevelName(args.log_level.upper()),
            )
            self._args = args
            func: Callable[[], Awaitable[int]] = args.func
            logging.debug(f"Running command {func.__name__}, tb = {traceback}")
            rc = await func()
            logging.debug(f"Command {func.__name__} returned {rc}")
        except Exception as ex:
            if isinstance(ex, CmdExitError):
                rc = ex.exit_code
            else:
                rc = 1
            if rc != 0:
                if traceback:
                    raise
            print(f"fhome: error: {ex}", file=sys.stderr)
        except BaseException as ex:
            print(f"fhome: Unhandled exception: {ex}", file=sys.stderr)
            raise

        return rc

    def run(self) -> int:
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            rc = loop.run_until_complete(self.arun())
        finally:
            loop.close()
        return rc

def run(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = CommandHandler(argv).run()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

async def arun(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = await CommandHandler(argv).arun()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
    sys.exit(run())
