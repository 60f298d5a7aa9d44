import json
import socket
import threading
from contextlib import contextmanager
from typing import Iterator


def http_response(body: dict) -> bytes:
    payload = json.dumps(body).encode("utf-8")
    headers = (
        "HTTP/1.1 200 OK\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {len(payload)}\r\n"
        "Connection: close\r\n\r\n"
    )
    return headers.encode("ascii") + payload


@contextmanager
def simple_http_server(port: int = 0) -> Iterator[str]:
    """Serve a fixed JSON body echoing the request line; yields the base URL."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.bind(("127.0.0.1", port))
    sock.listen(5)
    bound_port = sock.getsockname()[1]

    def handle_requests():
        while True:
            try:
                client, _ = sock.accept()
            except OSError:
                break
            try:
                request = client.recv(65536).decode("latin-1")
                request_line, _, header_block = request.partition("\r\n")
                headers = {}
                for line in header_block.split("\r\n"):
                    if ":" in line:
                        name, value = line.split(":", 1)
                        headers[name.strip().lower()] = value.strip()
                client.sendall(
                    http_response({"request": request_line, "headers": headers})
                )
            except OSError:
                pass
            finally:
                client.close()

    thread = threading.Thread(target=handle_requests, daemon=True)
    thread.start()

    try:
        yield f"http://127.0.0.1:{bound_port}"
    finally:
        sock.close()
