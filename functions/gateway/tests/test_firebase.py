import json
import threading
import time
import unittest
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock

import requests

from gateway.firebase import InMemoryFirebaseClient, RequestsFirebaseClient, build_url


class BuildUrlTests(unittest.TestCase):
    def test_joins_path_and_appends_key(self):
        self.assertEqual(
            build_url("https://db.test", "k1", "devices/dev1"),
            "https://db.test/devices/dev1.json?key=k1",
        )

    def test_strips_leading_slash(self):
        self.assertEqual(
            build_url("https://db.test", "k1", "//devices"),
            "https://db.test/devices.json?key=k1",
        )

    def test_root_path(self):
        self.assertEqual(build_url("https://db.test", "k1", "/"), "https://db.test/.json?key=k1")

    def test_uses_ampersand_when_query_present(self):
        self.assertEqual(
            build_url("https://db.test", "k1", "devices.json?shallow=true&x=1"),
            "https://db.test/devices.json?shallow=true&x=1.json&key=k1",
        )

    def test_key_is_url_encoded(self):
        self.assertEqual(
            build_url("https://db.test", "a b/c&d", "x"),
            "https://db.test/x.json?key=a%20b%2Fc%26d",
        )


def _response(status_code, body):
    response = MagicMock(status_code=status_code)
    response.iter_content.return_value = [body]
    return response


class RequestsFirebaseClientTests(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock(spec=requests.Session)
        self.client = RequestsFirebaseClient(
            base_url="https://db.test", api_key="secret", session=self.session
        )

    def test_get_uses_timeouts_and_follows_redirects(self):
        self.session.request.return_value = _response(200, b'{"a":1}')

        response = self.client.get("devices/dev1")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.body, b'{"a":1}')
        self.assertFalse(response.failed)
        self.session.request.assert_called_once_with(
            "GET",
            "https://db.test/devices/dev1.json?key=secret",
            timeout=(5.0, 15.0),
            allow_redirects=True,
            stream=True,
        )
        self.session.request.return_value.close.assert_called_once()

    def test_put_sends_json_body(self):
        self.session.request.return_value = _response(200, b"{}")

        self.client.put("devices/dev1", {"credits": 3})

        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ("PUT", "https://db.test/devices/dev1.json?key=secret"))
        self.assertEqual(json.loads(kwargs["data"]), {"credits": 3})
        self.assertEqual(kwargs["headers"], {"Content-Type": "application/json"})

    def test_error_status_is_not_a_transport_error(self):
        self.session.request.return_value = _response(401, b'{"error":"denied"}')

        response = self.client.get("devices")

        self.assertFalse(response.failed)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.body, b'{"error":"denied"}')

    def test_transport_error_is_reported_without_body(self):
        self.session.request.side_effect = requests.ConnectionError("connection refused")

        response = self.client.put("devices/dev1", {})

        self.assertTrue(response.failed)
        self.assertIsNone(response.body)
        self.assertIn("connection refused", response.error)
        self.session.request.assert_called_once()

    def test_timeout_is_a_transport_error(self):
        self.session.request.side_effect = requests.Timeout("read timed out")

        response = self.client.get("devices")

        self.assertTrue(response.failed)
        self.assertEqual(response.status_code, 0)

    def test_close_closes_session(self):
        self.client.close()
        self.session.close.assert_called_once()


class _TrickleHandler(BaseHTTPRequestHandler):
    """Sends a chunked JSON body, one chunk every ``delay`` seconds."""

    protocol_version = "HTTP/1.1"
    chunks = [b"{", b'"a"', b":", b"1", b"}"]
    delay = 0.0

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Transfer-Encoding", "chunked")
        self.end_headers()
        try:
            for chunk in self.chunks:
                time.sleep(self.delay)
                self.wfile.write(b"%x\r\n%s\r\n" % (len(chunk), chunk))
                self.wfile.flush()
            self.wfile.write(b"0\r\n\r\n")
            self.wfile.flush()
        except OSError:
            pass

    def log_message(self, format, *args):
        pass


class TotalTimeoutTests(unittest.TestCase):
    def _serve(self, delay):
        handler = type("Handler", (_TrickleHandler,), {"delay": delay})
        server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
        server.daemon_threads = True
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        self.addCleanup(server.server_close)
        self.addCleanup(server.shutdown)
        host, port = server.server_address
        return f"http://{host}:{port}"

    def test_slow_body_fails_once_budget_is_spent(self):
        base_url = self._serve(delay=0.4)
        client = RequestsFirebaseClient(
            base_url=base_url, api_key="k", connect_timeout=1, read_timeout=1
        )
        self.addCleanup(client.close)

        started = time.monotonic()
        response = client.get("devices")
        elapsed = time.monotonic() - started

        self.assertTrue(response.failed)
        self.assertEqual(response.status_code, 0)
        self.assertIsNone(response.body)
        self.assertLess(elapsed, 1.9)

    def test_prompt_body_is_returned(self):
        base_url = self._serve(delay=0.0)
        client = RequestsFirebaseClient(
            base_url=base_url, api_key="k", connect_timeout=1, read_timeout=2
        )
        self.addCleanup(client.close)

        response = client.get("devices")

        self.assertFalse(response.failed)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.body), {"a": 1})

class InMemoryFirebaseClientTests(unittest.TestCase):
    def test_missing_path_reads_null(self):
        client = InMemoryFirebaseClient()
        response = client.get("devices/nope")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.body), None)

    def test_put_then_get_parent(self):
        client = InMemoryFirebaseClient()
        put = client.put("devices/dev1", {"credits": 1})
        self.assertEqual(json.loads(put.body), {"credits": 1})
        self.assertEqual(json.loads(client.get("devices").body), {"dev1": {"credits": 1}})
        self.assertEqual(
            [(method, path) for method, path, _ in client.calls],
            [("PUT", "devices/dev1"), ("GET", "devices")],
        )

    def test_canned_failures(self):
        client = InMemoryFirebaseClient()
        client.failures["devices"] = "dns failure"
        client.statuses["devices/dev1"] = (404, '{"error":"nope"}')
        self.assertTrue(client.get("/devices").failed)
        response = client.get("devices/dev1")
        self.assertEqual((response.status_code, response.body), (404, b'{"error":"nope"}'))


if __name__ == "__main__":
    unittest.main()
