#!/usr/bin/python3

# Copyright 2020 Steven Kroh
#
# This file is part of unbound-blocklist.
#
# unbound-blocklist is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# unbound-blocklist is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with unbound-blocklist.  If not, see <https://www.gnu.org/licenses/>.

import fcntl
import functools
import logging
import logging.config
import os
import re
import shlex
import shutil
import subprocess
import sys
from argparse import ArgumentParser
from collections import namedtuple
from configparser import ConfigParser
from datetime import datetime, timezone
from email.utils import format_datetime
from http import HTTPStatus
from http.client import HTTPException
from pathlib import Path
from subprocess import PIPE, STDOUT
from tempfile import NamedTemporaryFile
from textwrap import indent
from typing import Iterable, Iterator, List, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

VERSION = "0.1"

logging.basicConfig(format="%(message)s")
logger = logging.getLogger("unbound-blocklist")
logger.setLevel(logging.INFO)

USER_AGENT = "unbound-blocklist/" + VERSION

# Hosts files map blocked names to this address.
DENY_IP = "0.0.0.0"

# Matches valid zone names.
ZONE_PATTERN = re.compile(r"[-_.a-zA-Z0-9]+")

blurb = """
This program merges hosts-style deny lists into an Unbound local-zone
config file, skipping zones matched by an allow list of regular
expressions. The file is replaced atomically, checked, and the
resolver is restarted.
"""

default_allow_url = \
    "https://raw.githubusercontent.com/derat/dns-lists/master/allow-patterns"

default_deny_urls = [
    "https://raw.githubusercontent.com/derat/dns-lists/master/deny-hosts",
    "https://raw.githubusercontent.com/StevenBlack/hosts/master/hosts",
]

default_config_file = f"""
[main]
config_path    = /etc/unbound/unbound.conf.d/blocklist.conf
allow_url      = {default_allow_url}

#
# The checker is run with the config path appended. Unbound is
# restarted only after the check succeeds.
#
check_command  = unbound-checkconf
reload_command = service unbound restart

#
# Run the checker against the staged file before it replaces the
# config path. When off, an invalid file is left installed (but the
# resolver is not restarted).
#
check_staged   = off

#
# Emit a `server:` line after the header. Enable this when the file is
# included at the top level of unbound.conf rather than from within a
# server clause.
#
server_clause  = off
config_mode    = 644

#
# You may provide your own log config to customize message formats,
# destinations, levels, etc.
#
# See: https://docs.python.org/3/library/logging.config.html
#
#log_config     = /etc/unbound-blocklist-loggers.ini

#
# Hosts files listing zones to deny. Entries must be mapped to 0.0.0.0.
# If a url contains the `=` character, you must provide a unique key
# for the list item, such as:
#
#  list.0 = https://example.com/hosts?format=hosts
#
[list]
{os.linesep.join(default_deny_urls)}
"""


class CommandExitSuccess(Exception):
    """
    Raised to end execution early while indicating success.
    This is used to implement secondary workflows like --init.
    """
    pass


class CommandExitFailure(Exception):
    """
    Raised to end execution early while indicating failure.
    Any applicable error messages should be logged before raising this.
    """
    pass


class UpdateError(Exception):
    """
    Base class for failures which abort an update. The message is
    logged once by main() before exiting.
    """
    pass


class FetchError(UpdateError):
    def __init__(self, url, reason):
        super().__init__(f"failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class PatternCompileError(UpdateError):
    def __init__(self, line, error):
        super().__init__(f"failed to compile allow pattern {line!r}: {error}")
        self.line = line


class BadZoneSyntax(ValueError):
    """
    A deny list named a zone with characters Unbound will not accept.
    Never fatal: the zone is logged and skipped.
    """
    def __init__(self, zone, source):
        super().__init__(f"skipping bad zone {zone!r} in {source}")
        self.zone = zone
        self.source = source


class WriteError(UpdateError):
    pass


class RenameError(UpdateError):
    pass


class LockError(UpdateError):
    pass


class CommandError(UpdateError):
    def __init__(self, result):
        command = " ".join(result.command_list)
        output = result.output.rstrip()
        message = f"{command} exited with status {result.returncode}"
        super().__init__(message + (":" + os.linesep + output
                                    if output else ""))
        self.result = result


class ValidationError(CommandError):
    pass


class ReloadError(CommandError):
    pass


UpdateConfig = namedtuple("UpdateConfig", [
    "allow_url",
    "deny_urls",
    "dest_path",
    "dry_run",
    "check_command",
    "reload_command",
    "config_mode",
    "check_staged",
    "server_clause",
    "debug_pipelines",
], defaults=(
    ["unbound-checkconf"],
    ["service", "unbound", "restart"],
    0o644,
    False,
    False,
    (),
))


class Settings:
    """
    The Settings class overlays a traditional python ArgumentParser on
    top of a traditional ConfigParser. Sources are consulted in order
    of precedence: program arguments first, then a config file if that
    exists, and finally the defaults provided here.

    This class will look for the config file at
    /etc/unbound-blocklist.ini by default. The user may specify an
    alternate config file with the --config flag.
    """
    main_section = "main"  # settings which apply globally
    list_section = "list"  # each item in this section is a deny list

    octal = functools.partial(int, base=8)

    def __init__(self, argv=None):
        """
        Create the ArgumentParser, ConfigParser, and related metadata.

        The ConfigParser is passed allow_no_value=True so that deny
        lists may be provided under the list section without a key.
        Interpolation is disabled since urls may contain `%`.
        """
        self.metadata = {}  # built up with each call to add_setting
        self.arg_parser = ArgumentParser(description=blurb)
        self.cfg_parser = ConfigParser(allow_no_value=True, delimiters=("=",),
                                       interpolation=None)
        self.cfg_parser.optionxform = str
        self.cfg_parser.add_section(self.main_section)
        self.cfg_parser.add_section(self.list_section)
        self.catalog()
        self.args = self.arg_parser.parse_args(argv)
        if self.args.config_file.is_file():
            self.cfg_parser.read(self.args.config_file)

    def __getattr__(self, item):
        if item.startswith("__") or item in ("metadata", "args",
                                             "cfg_parser", "arg_parser"):
            raise AttributeError(item)
        return self.get_setting(item)

    def catalog(self):
        self.add_setting("--init", dest="init", type=bool, default=False,
                         help="write the default config file",
                         action="store_true")
        self.add_setting("-c", "--config", dest="config_file", type=Path,
                         default="/etc/unbound-blocklist.ini",
                         help="config file path")
        self.add_setting("--log-config", dest="log_config", type=Path,
                         default="/etc/unbound-blocklist-loggers.ini",
                         section=self.main_section)
        self.add_setting("-v", "--verbose", dest="verbose", type=bool,
                         default=False, action="store_true",
                         help="log all messages")
        self.add_setting("-s", "--silent", dest="silent", type=bool,
                         default=False, action="store_true",
                         help="do not log any messages")
        self.add_setting("-G", "--debug-pipeline", dest="debug_pipelines",
                         type=list, default=[], action="append",
                         help="log every item yielded by an extraction stage")
        self.add_setting("-n", "--dry-run", dest="dry_run", type=Path,
                         default=None,
                         help="write to the supplied path and don't "
                              "check or restart unbound")
        self.add_setting(dest="config_path", type=Path,
                         default="/etc/unbound/unbound.conf.d/blocklist.conf",
                         section=self.main_section)
        self.add_setting(dest="allow_url", type=str,
                         default=default_allow_url,
                         section=self.main_section)
        self.add_setting(dest="deny_urls", type=list,
                         default=default_deny_urls,
                         section=self.list_section)
        self.add_setting(dest="check_command", type=shlex.split,
                         default="unbound-checkconf",
                         section=self.main_section)
        self.add_setting(dest="reload_command", type=shlex.split,
                         default="service unbound restart",
                         section=self.main_section)
        self.add_setting(dest="config_mode", type=self.octal, default="644",
                         section=self.main_section)
        self.add_setting(dest="check_staged", type=bool, default=False,
                         section=self.main_section)
        self.add_setting(dest="server_clause", type=bool, default=False,
                         section=self.main_section)

    Metadata = namedtuple("metadata", ["type", "section", "default"])

    def add_setting(self, *args, dest=None, section=None, **kwargs):
        """
        Prepare arg_parser and cfg_parser to accommodate a new setting.

        If section= is provided, the config file will be consulted. The
        setting will be looked up under that section. If flag arguments
        are not provided, only the config file will be consulted.

        If both the program arguments and the config file should be
        consulted for this setting, we store the setting default in
        cfg_parser. Otherwise we store the default in arg_parser.

        action= and type= are incompatible. If both are present, omit
        type from the call to arg_parser.add_argument().

        List defaults are kept in the metadata rather than cfg_parser so
        that a config file listing its own urls replaces them.
        """
        type = kwargs["type"]
        default = kwargs.pop("default")
        self.metadata[dest] = self.Metadata(type, section, default)
        if "action" in kwargs:
            kwargs.pop("type")

        if args and section:
            self.arg_parser.add_argument(*args, dest=dest, default=None,
                                         **kwargs)
        elif args:
            self.arg_parser.add_argument(*args, dest=dest, default=default,
                                         **kwargs)

        if section and type == list:
            pass
        elif section and default is None:
            self.cfg_parser[section][dest] = None
        elif section:
            self.cfg_parser[section][dest] = str(default)

    def get_setting(self, item):
        """
        Get the setting value by consulting sources in order of
        precedence: program arguments, then config file, then program
        defaults.
        """
        if item not in self.metadata:
            raise CommandExitFailure(item)

        type, section, default = self.metadata[item]

        if getattr(self.args, item, None) is not None:
            return getattr(self.args, item)
        elif section is None:
            return default
        elif type == list:
            items = [v or k for k, v in self.cfg_parser.items(section)]
            return items or list(default)

        value = self.cfg_parser[section].get(item)
        if value is None:
            return value
        elif type == bool:
            try:
                return self.cfg_parser[section].getboolean(item)
            except ValueError as ex:
                logger.error("%s must be on or off, not %r", item, value)
                raise CommandExitFailure(item) from ex
        try:
            return type(value)
        except ValueError as ex:
            logger.error("invalid value for %s: %r", item, value)
            raise CommandExitFailure(item) from ex

    def to_update_config(self):
        dry_run = self.dry_run is not None
        return UpdateConfig(
            allow_url=self.allow_url,
            deny_urls=tuple(self.deny_urls),
            dest_path=self.dry_run if dry_run else self.config_path,
            dry_run=dry_run,
            check_command=self.check_command,
            reload_command=self.reload_command,
            config_mode=self.config_mode,
            check_staged=self.check_staged,
            server_clause=self.server_clause,
            debug_pipelines=tuple(self.debug_pipelines),
        )


#
# Fetching
#


def fetch_lines(url) -> Iterator[str]:
    """
    Yield lines from the document at url. The response is read lazily
    and closed once exhausted, on error, or when the caller closes the
    generator. Any transport failure or a non-200 status raises
    FetchError. There is no retry.
    """
    logger.info("requesting %s", url)
    req = Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urlopen(req) as res:
            if res.status != HTTPStatus.OK:
                raise FetchError(url, f"HTTP {res.status}")
            for line in res:
                yield line.decode("utf-8", errors="replace")
            # Content-Length counts down as the body is read
            if res.length:
                raise FetchError(url, f"incomplete body, {res.length} "
                                      f"bytes missing")
    except HTTPError as ex:
        raise FetchError(url, f"HTTP {ex.code} {ex.reason}") from ex
    except URLError as ex:
        raise FetchError(url, ex.reason) from ex
    except HTTPException as ex:
        raise FetchError(url, repr(ex)) from ex
    except OSError as ex:
        raise FetchError(url, ex) from ex


def get_lines(text):
    """
    Yield non-empty lines from a blob of text.
    """
    for line in text.splitlines():
        if line:
            yield line


#
# Pipeline Functions
#


def pipeline_debugger(pipeline, debug_pipelines):
    """
    Each `-G <pipeline>` logs all items yielded by that pipeline
    """
    pipeline_name = pipeline.__name__
    if pipeline_name in debug_pipelines:
        pl_logger = logging.getLogger("unbound-blocklist.pipeline." +
                                      pipeline_name)
        pl_logger.setLevel(logging.DEBUG)

        def wrapper(*args, **kwargs):
            for item in pipeline(*args, **kwargs):
                pl_logger.debug(item)
                yield item

        return wrapper
    else:
        return pipeline


def compose(functions, debug_pipelines):
    functions = [pipeline_debugger(fn, debug_pipelines) for fn in functions]

    def compose2(f, g):
        return lambda x: f(g(x))
    return functools.reduce(compose2, functions, lambda x: x)


def pl_normalize(lines):
    for line in lines:
        yield line.strip()


def pl_omit_blank_lines(lines):
    for line in lines:
        if line:
            yield line


def pl_omit_line_comments(lines):
    for line in lines:
        if not line.startswith("#"):
            yield line


def pl_split_fields(lines):
    for line in lines:
        yield line.split()


def pl_select_denied_zones(entries):
    """
    Keep the name from entries of the form `0.0.0.0 <name> ...`.

    Anything else is dropped without a word, including entries mapping
    0.0.0.0 to itself, which some hosts files carry.
    """
    for fields in entries:
        if len(fields) < 2 or fields[0] != DENY_IP or fields[1] == DENY_IP:
            continue
        yield fields[1]


def validate_zone(zone, source):
    if not ZONE_PATTERN.fullmatch(zone):
        raise BadZoneSyntax(zone, source)
    return zone


def pl_omit_bad_zones(source):
    def pipeline(zones):
        for zone in zones:
            try:
                yield validate_zone(zone, source)
            except BadZoneSyntax as ex:
                logger.warning("%s", ex)
    pipeline.__name__ = "pl_omit_bad_zones"
    return pipeline


def pl_omit_allowed_zones(allow_patterns):
    def pipeline(zones):
        for zone in zones:
            if not allow_patterns.matches(zone):
                yield zone
    pipeline.__name__ = "pl_omit_allowed_zones"
    return pipeline


def extract_zones(lines, source, allow_patterns, debug_pipelines=()):
    """
    Lazily turn the lines of one hosts file into the zones to refuse.
    Zones keep their document order and are not deduplicated.
    """
    pipeline = compose([
        pl_omit_allowed_zones(allow_patterns),
        pl_omit_bad_zones(source),
        pl_select_denied_zones,
        pl_split_fields,
        pl_omit_line_comments,
        pl_omit_blank_lines,
        pl_normalize
    ], debug_pipelines)
    return pipeline(lines)


class AllowPatternSet:
    """
    Regular expressions naming zones which are never refused. A zone is
    allowed when any pattern matches anywhere within it.
    """

    def __init__(self, patterns=()):
        self.patterns = list(patterns)

    @classmethod
    def from_lines(cls, lines):
        """
        Compile each line as a pattern, after stripping whitespace and
        skipping blank lines and `#` comments. A single bad pattern
        fails the whole set.
        """
        patterns = []
        for line in pl_omit_line_comments(pl_omit_blank_lines(
                pl_normalize(lines))):
            try:
                patterns.append(re.compile(line))
            except re.error as ex:
                raise PatternCompileError(line, ex) from ex
        return cls(patterns)

    def __len__(self):
        return len(self.patterns)

    def matches(self, zone):
        return any(pattern.search(zone) for pattern in self.patterns)


#
# Config Generation
#


Source = Tuple[str, Iterable[str]]


def format_directive(zone):
    return f'local-zone: "{zone}" refuse'


def render_config(sources: Iterable[Source], generated_at: datetime,
                  server_clause=False) -> Iterator[str]:
    """
    Generate component lines of the Unbound config file.

    Each source is a (url, zones) pair. Sources and zones are consumed
    one at a time in the order given.
    """
    yield "# Written on " + format_datetime(generated_at, usegmt=True) \
        + os.linesep
    if server_clause:
        yield "server:" + os.linesep
    for url, zones in sources:
        yield os.linesep
        yield "# " + url + os.linesep
        count = 0
        for zone in zones:
            count += 1
            yield format_directive(zone) + os.linesep
        logger.info("%d %s from %s", count,
                    "zone" if count == 1 else "zones", url)


#
# File Management
#


class AtomicConfigWriter:
    """
    Write to a temp file next to dest_path, then rename it over
    dest_path. The rename is the only step which touches dest_path.

    Writes never raise. The first write error is recorded and reported
    by stage() (and therefore finish()). Writes after an error are
    skipped.
    """

    def __init__(self, dest_path, mode=None):
        self.dest_path = Path(dest_path)
        self.mode = mode
        self.error = None  # first error raised by a write
        self.closed = False  # the temp file has been closed
        self.promoted = False  # the temp file has been renamed to dest_path
        # Use a '.tmp' suffix since Unbound includes *.conf
        try:
            self.file = NamedTemporaryFile(
                "w", dir=self.dest_path.parent, delete=False,
                prefix="." + self.dest_path.name + ".", suffix=".tmp")
        except OSError as ex:
            raise WriteError(f"failed to create temp file next to "
                             f"{self.dest_path}: {ex}") from ex
        self.staged_path = Path(self.file.name)
        logger.debug("staging %s", self.staged_path)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def write(self, text):
        """
        Returns the number of characters written, which is 0 once any
        write has failed.
        """
        if self.error is not None:
            return 0
        try:
            return self.file.write(text)
        except OSError as ex:
            self.error = ex
            return 0

    def writelines(self, lines):
        for line in lines:
            self.write(line)

    def stage(self):
        """
        Report any deferred write error, then flush and close the temp
        file so it can be checked or promoted.
        """
        if self.error is not None:
            raise WriteError(f"failed to write {self.staged_path}: "
                             f"{self.error}") from self.error
        if self.closed:
            return
        try:
            self.file.close()
            self.closed = True
            if self.mode is not None:
                os.chmod(self.staged_path, self.mode)
        except OSError as ex:
            raise WriteError(f"failed to finish {self.staged_path}: "
                             f"{ex}") from ex

    def promote(self):
        try:
            os.replace(self.staged_path, self.dest_path)
        except OSError as ex:
            raise RenameError(f"failed to rename {self.staged_path} to "
                              f"{self.dest_path}: {ex}") from ex
        self.promoted = True

    def finish(self):
        self.stage()
        self.promote()

    def close(self):
        """
        Release the temp file. Unless it was promoted, it is removed.
        Safe to call more than once.
        """
        if not self.closed:
            self.closed = True
            try:
                self.file.close()
            except OSError as ex:
                logger.debug("could not close %s: %s", self.staged_path, ex)
        if not self.promoted:
            try:
                self.staged_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as ex:
                logger.debug("could not remove %s: %s", self.staged_path, ex)


def lock_path_for(dest_path):
    dest_path = Path(dest_path)
    return dest_path.parent / ("." + dest_path.name + ".lock")


class RunLock:
    """
    An exclusive flock held for the length of a run, so two runs never
    race on the same destination. Fails instead of waiting.
    """

    def __init__(self, path):
        self.path = Path(path)
        self.file = None

    def __enter__(self):
        try:
            self.file = self.path.open("a")
        except OSError as ex:
            raise LockError(f"failed to open {self.path}: {ex}") from ex
        try:
            fcntl.flock(self.file, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as ex:
            self.file.close()
            self.file = None
            raise LockError(f"another update holds {self.path}") from ex
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.file is not None:
            fcntl.flock(self.file, fcntl.LOCK_UN)
            self.file.close()
            self.file = None


#
# External Commands
#


CommandResult = namedtuple("CommandResult",
                           ["command_list", "returncode", "output"])


class CommandRunner:
    """
    Runs external programs synchronously, capturing stdout and stderr
    together. Tests substitute an object with the same run() method.
    """

    def run(self, command_list: List[str]) -> CommandResult:
        command = shutil.which(command_list[0])
        if command is None:
            return CommandResult(command_list, 127,
                                 f"could not find {command_list[0]}")
        logger.debug("running %s", " ".join(command_list))
        proc = subprocess.run([command] + list(command_list[1:]),
                              stdout=PIPE, stderr=STDOUT,
                              universal_newlines=True, errors="replace")
        for line in get_lines(proc.stdout):
            logger.debug(line.rstrip())
        return CommandResult(command_list, proc.returncode, proc.stdout)


def validate_config(runner, check_command, path):
    logger.info("checking %s", path)
    result = runner.run(list(check_command) + [str(path)])
    if result.returncode != 0:
        raise ValidationError(result)


def reload_service(runner, reload_command):
    logger.info("reloading unbound")
    result = runner.run(list(reload_command))
    if result.returncode != 0:
        raise ReloadError(result)


#
# Update Procedure
#


class BlocklistUpdater:
    """
    Fetch the allow list, then each deny list in turn, rendering zones
    straight into a staged file. The staged file replaces the
    destination only once every source has been written. Unless this
    is a dry run, the result is checked and unbound is restarted.

    Any UpdateError aborts the run. The staged file is removed on the
    way out and later steps are never attempted.
    """

    def __init__(self, config: UpdateConfig, fetch=fetch_lines,
                 runner=None, clock=None):
        self.config = config
        self.fetch = fetch
        self.runner = runner or CommandRunner()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def load_allow_patterns(self):
        allow_patterns = AllowPatternSet.from_lines(
            self.fetch(self.config.allow_url))
        logger.info("loaded %d allow patterns", len(allow_patterns))
        return allow_patterns

    def sources(self, allow_patterns):
        for url in self.config.deny_urls:
            zones = extract_zones(self.fetch(url), url, allow_patterns,
                                  self.config.debug_pipelines)
            yield url, zones

    def run(self):
        config = self.config
        with RunLock(lock_path_for(config.dest_path)):
            allow_patterns = self.load_allow_patterns()
            with AtomicConfigWriter(config.dest_path,
                                    config.config_mode) as writer:
                writer.writelines(render_config(
                    self.sources(allow_patterns), self.clock(),
                    config.server_clause))
                writer.stage()
                if config.check_staged and not config.dry_run:
                    validate_config(self.runner, config.check_command,
                                    writer.staged_path)
                writer.promote()
            logger.info("wrote %s", config.dest_path)

            if config.dry_run:
                return
            if not config.check_staged:
                validate_config(self.runner, config.check_command,
                                config.dest_path)
            reload_service(self.runner, config.reload_command)
            logger.info("complete")


#
# Main Procedure and Helpers
#


def _setup_config_file(settings):
    if settings.init and settings.config_file.is_file():
        logger.error("%s already exists", settings.config_file)
        raise CommandExitFailure
    elif settings.init:
        logger.info("writing %s", settings.config_file)
        with settings.config_file.open("w") as config_file:
            config_file.write(default_config_file.lstrip())
        raise CommandExitSuccess


def _setup_logging(settings):
    if settings.log_config and settings.log_config.is_file():
        logging.config.fileConfig(settings.log_config)
    elif settings.verbose:
        logger.setLevel(logging.DEBUG)
    elif settings.silent:
        logger.setLevel(logging.ERROR)


def _validate_urls(config):
    if not config.deny_urls:
        logger.error("you must specify at least one deny list")
        raise CommandExitFailure
    for url in (config.allow_url,) + tuple(config.deny_urls):
        if not url or "://" not in url:
            logger.error("not a url: %r", url)
            raise CommandExitFailure


def _describe_config(config):
    logger.debug("allow list: %s", config.allow_url)
    logger.debug("deny lists:%s%s", os.linesep,
                 indent(os.linesep.join(config.deny_urls), "  "))
    if config.dry_run:
        logger.info("dry run, writing %s", config.dest_path)


def exit_code_wrapper(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            func(*args, **kwargs)
            return os.EX_OK
        except CommandExitSuccess:
            return os.EX_OK
        except CommandExitFailure:
            return os.EX_SOFTWARE
        except UpdateError as ex:
            logger.error("%s", ex)
            return os.EX_SOFTWARE
    return wrapper


@exit_code_wrapper
def main(argv=None):
    """
    Regenerate the blocklist config, then check it and restart unbound.

    Each step assumes it will succeed. The first failure is raised as
    an UpdateError, which is logged as the only error message.
    """
    settings = Settings(argv)

    _setup_config_file(settings)
    _setup_logging(settings)

    config = settings.to_update_config()
    _validate_urls(config)
    _describe_config(config)

    BlocklistUpdater(config).run()


if __name__ == "__main__":
    sys.exit(main())
