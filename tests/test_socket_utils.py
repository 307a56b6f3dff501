import socket

from pwproxy._internal.socket_utils import find_free_port, port_is_open


def test_find_free_port_is_bindable():
    port = find_free_port()

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("127.0.0.1", port))


def test_port_is_open_with_listener():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        port = listener.getsockname()[1]

        assert port_is_open(port)


def test_port_closed_without_listener():
    assert not port_is_open(find_free_port())
