"""Tiny HTTP endpoint exposing Prometheus metrics while a read runs."""

from __future__ import annotations

import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from filerange.monitoring.metrics import CONTENT_TYPE_LATEST, generate_latest


class MetricsHandler(BaseHTTPRequestHandler):
    def do_GET(self):  # noqa: N802
        if self.path == "/metrics":
            output = generate_latest()
            self.send_response(200)
            self.send_header("Content-Type", CONTENT_TYPE_LATEST)
            self.send_header("Content-Length", str(len(output)))
            self.end_headers()
            self.wfile.write(output)
            return

        self.send_response(404)
        self.end_headers()

    def log_message(self, _format: str, *_args):  # noqa: D401, ANN001
        """Silence default HTTP request logging."""
        return


def start_metrics_server(port: int, host: str = "") -> ThreadingHTTPServer:
    """Serve ``/metrics`` from a daemon thread; call ``shutdown()`` when done."""
    server = ThreadingHTTPServer((host, port), MetricsHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server
