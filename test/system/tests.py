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

import functools
import logging
import os
import shutil
import subprocess
import sys
from http.server import HTTPServer, SimpleHTTPRequestHandler
from pathlib import Path
from tempfile import mkdtemp
from textwrap import dedent
from threading import Thread
from unittest import TestCase
from urllib.parse import urlparse

from test.test_data import (allow_url, deny_url_one, deny_url_two,
                            expected_config, test_data)

logging.basicConfig(format="%(message)s")
logger = logging.getLogger(__name__)

test_data_by_path = {urlparse(url).path: text
                     for url, text in test_data.items()}

unbound_blocklist = Path(__file__).resolve().parents[2] / \
    "unbound_blocklist.py"


class LoggingRequestHandler(SimpleHTTPRequestHandler):
    def log_message(self, format, *args):
        logger.info("%s - - [%s] %s" %
                    (self.address_string(),
                     self.log_date_time_string(),
                     format % args))


# Responses cut off before the promised end of the body.
truncated_responses = {
    "/short-length": (
        b"HTTP/1.1 200 OK\r\n"
        b"Content-Length: 1000\r\n"
        b"Connection: close\r\n\r\n"
        b"0.0.0.0 a.example.com\n"
    ),
    "/truncated-chunked": (
        b"HTTP/1.1 200 OK\r\n"
        b"Transfer-Encoding: chunked\r\n"
        b"Connection: close\r\n\r\n"
        b"16\r\n0.0.0.0 a.example.com\n\r\n"
        b"40\r\n0.0.0.0 b.exa"
    ),
}


class TruncatingRequestHandler(LoggingRequestHandler):
    def do_GET(self):
        response = truncated_responses.get(self.path)
        if response is None:
            return super().do_GET()
        self.wfile.write(response)
        self.close_connection = True


class FunctionalTestCase(TestCase):
    def setUp(self):
        self.serve_dir = Path(mkdtemp(prefix="functional"))
        self.work_dir = Path(mkdtemp(prefix="functional"))

        self.config_path = self.work_dir / "blocklist.conf"
        self.config_file = self.work_dir / "unbound-blocklist.ini"
        self.reloaded = self.work_dir / "reloaded"

        handler = functools.partial(TruncatingRequestHandler,
                                    directory=str(self.serve_dir))
        self._server = HTTPServer(("127.0.0.1", 0), handler)
        self._server_thread = Thread(target=self._server.serve_forever)
        self._server_thread.start()
        self.base_url = "http://127.0.0.1:%d" % self._server.server_port

        for url in test_data:
            self.install_list(url)

    def tearDown(self):
        self._server.shutdown()
        self._server_thread.join(timeout=2)
        self._server.server_close()

        shutil.rmtree(self.serve_dir)
        shutil.rmtree(self.work_dir)

    def local_url(self, url):
        return self.base_url + urlparse(url).path

    def install_list(self, url, update=None):
        path = urlparse(url).path
        text = test_data_by_path[path]
        if update:
            text += update + os.linesep
        with open(self.serve_dir / path.lstrip("/"), "w") as file:
            file.write(text)

    def install_config(self, check_command="true", check_staged="off",
                       deny_urls=(deny_url_one, deny_url_two)):
        lists = os.linesep.join(self.local_url(url) for url in deny_urls)
        text = dedent(
            """
            [main]
            config_path    = {config_path}
            allow_url      = {allow_url}
            check_command  = {check_command}
            reload_command = touch {reloaded}
            check_staged   = {check_staged}

            [list]
            """
        ).format(config_path=self.config_path,
                 allow_url=self.local_url(allow_url),
                 check_command=check_command,
                 reloaded=self.reloaded,
                 check_staged=check_staged)
        self.config_file.write_text(text + lists + os.linesep)

    def run_unbound_blocklist(self, args=(), noise="--silent", success=True):
        proc = subprocess.run([sys.executable, str(unbound_blocklist), noise,
                               "--config", str(self.config_file)] + list(args),
                              stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                              universal_newlines=True)
        self.assertEqual(success, proc.returncode == 0, proc.stderr)
        return proc

    def assert_config_body(self, text):
        header, _, body = text.partition(os.linesep)
        self.assertTrue(header.startswith("# Written on "))
        self.assertTrue(header.endswith(" GMT"))
        expected_body = expected_config.partition(os.linesep)[2]
        for url in (deny_url_one, deny_url_two):
            expected_body = expected_body.replace(url, self.local_url(url))
        self.assertEqual(expected_body, body)

    def stray_files(self):
        return [path.name for path in self.work_dir.iterdir()
                if path.name.endswith(".tmp")]


class T1DryRunTests(FunctionalTestCase):
    def test_dry_run(self):
        self.install_config()
        out_path = self.work_dir / "preview.conf"
        self.run_unbound_blocklist(["--dry-run", str(out_path)])
        self.assert_config_body(out_path.read_text())
        self.assertFalse(self.config_path.exists())
        self.assertFalse(self.reloaded.exists())

    def test_dry_run_after_update(self):
        self.install_config()
        out_path = self.work_dir / "preview.conf"
        self.install_list(deny_url_two, update="0.0.0.0 baz.example.net")
        self.run_unbound_blocklist(["--dry-run", str(out_path)])
        self.assertIn('local-zone: "baz.example.net" refuse',
                      out_path.read_text())

    def test_bad_zone_warning(self):
        self.install_config()
        out_path = self.work_dir / "preview.conf"
        proc = self.run_unbound_blocklist(["--dry-run", str(out_path)],
                                          noise="--verbose")
        self.assertIn("bad/zone!", proc.stderr)
        self.assertNotIn("bad/zone!", out_path.read_text())

    def test_silent(self):
        self.install_config()
        out_path = self.work_dir / "preview.conf"
        proc = self.run_unbound_blocklist(["--dry-run", str(out_path)])
        self.assertEqual("", proc.stdout)
        self.assertEqual("", proc.stderr)


class T2UpdateTests(FunctionalTestCase):
    def test_update(self):
        self.install_config()
        self.run_unbound_blocklist()
        self.assert_config_body(self.config_path.read_text())
        self.assertTrue(self.reloaded.exists())
        self.assertListEqual([], self.stray_files())

    def test_check_failure(self):
        self.install_config(
            check_command='sh -c "echo syntax error in $0; exit 1"')
        proc = self.run_unbound_blocklist(success=False)
        self.assertIn("syntax error in " + str(self.config_path), proc.stderr)
        self.assertFalse(self.reloaded.exists())
        # The unchecked file is left installed.
        self.assertTrue(self.config_path.exists())

    def test_staged_check_failure(self):
        self.config_path.write_text("# old" + os.linesep)
        self.install_config(check_command="false", check_staged="on")
        self.run_unbound_blocklist(success=False)
        self.assertEqual("# old" + os.linesep, self.config_path.read_text())
        self.assertFalse(self.reloaded.exists())
        self.assertListEqual([], self.stray_files())

    def test_missing_list(self):
        self.config_path.write_text("# old" + os.linesep)
        self.install_config(deny_urls=(deny_url_one,
                                       "http://lists.example.com/missing"))
        proc = self.run_unbound_blocklist(success=False)
        self.assertIn("404", proc.stderr)
        self.assertEqual("# old" + os.linesep, self.config_path.read_text())
        self.assertFalse(self.reloaded.exists())
        self.assertListEqual([], self.stray_files())

    def test_bad_allow_pattern(self):
        self.install_config()
        with open(self.serve_dir / "allow-patterns", "a") as file:
            file.write("ads(" + os.linesep)
        proc = self.run_unbound_blocklist(success=False)
        self.assertIn("ads(", proc.stderr)
        self.assertFalse(self.config_path.exists())


class T3ConfigFileTests(FunctionalTestCase):
    def test_init(self):
        self.run_unbound_blocklist(["--init"])
        self.assertIn("[list]", self.config_file.read_text())

    def test_init_again(self):
        self.install_config()
        self.run_unbound_blocklist(["--init"], success=False)


class T4TruncatedBodyTests(FunctionalTestCase):
    def _run_truncated(self, path):
        self.config_path.write_text("# old" + os.linesep)
        self.install_config(deny_urls=(deny_url_one,
                                       "http://lists.example.com" + path))
        proc = self.run_unbound_blocklist(success=False)
        self.assertNotIn("Traceback", proc.stderr)
        self.assertEqual(1, len(proc.stderr.splitlines()))
        self.assertEqual("# old" + os.linesep, self.config_path.read_text())
        self.assertFalse(self.reloaded.exists())
        self.assertListEqual([], self.stray_files())
        return proc

    def test_short_content_length(self):
        proc = self._run_truncated("/short-length")
        self.assertIn("incomplete body", proc.stderr)

    def test_truncated_chunked_body(self):
        proc = self._run_truncated("/truncated-chunked")
        self.assertIn("IncompleteRead", proc.stderr)
