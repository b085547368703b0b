# acid

A small toolkit for building network services in Python.

## What is in it

- `acid.timer`: `TimerManager` keeps one-shot and recurring `Timer`s in deadline order. It has these methods:
  - `add_timer(ms, cb, recurring)`
  - `add_condition_timer(ms, cb, cond, recurring)`: `cb` runs only while `cond`, held by weak reference, is still alive.
  - `get_next_timer()`: milliseconds until the earliest deadline. It returns `NO_TIMER` when nothing is pending.
  - `get_expired_callbacks()`
  - `has_timer()`
  - `on_insert_at_front()`: a hook that is called when a new timer becomes the earliest one.

  A `Timer` can be changed with `cancel()`, `refresh()` and `reset(ms, from_now)`.
- `acid.thread`: `Thread(name, cb)` starts running `cb` at once. Its `id` holds the native thread id, and `join()` waits for it. `current_thread()`, `current_thread_name()` and `set_current_thread_name(name)` work on the calling thread. `current_thread_name()` returns `"main"` outside a `Thread`.
- `acid.address`: `IPv4Address`, `IPv6Address`, `UnixAddress` and `UnknownAddress`.
  - Addresses are compared and ordered by their raw `sockaddr` bytes (`to_bytes()`).
  - IP addresses have `broadcast_address`, `network_address` and `subnet_mask`.
  - `IPAddress.create(host, port)` resolves a name or a literal.
  - `lookup`, `lookup_any` and `lookup_any_ip_address` accept `host`, `host:port` or `[v6]:port`.
  - `get_interface_addresses(family)` and `get_interface_addresses_for(iface, family)` list local interface addresses with their prefix lengths. They use `psutil` to do this.
- `acid.uri`: `Uri.create(text)` parses strings such as `https://example.com/add?a=1&b=2#frag`, `file:///c:/desktop/a.txt` and `magnet:?xt=...`. It returns `None` for invalid input.
  - A `Uri` exposes `scheme`, `userinfo`, `host`, `port`, `path`, `query` and `fragment`.
  - `port` falls back to 80 for http/ws and to 443 for https/wss.
  - `create_address()` resolves the host.
  - `str()` formats the URI back into text.
- `acid.sockets`: `Socket` creates the OS socket lazily, on the first `bind` or `connect`.
  - Constructors: `create_tcp`, `create_udp`, `create_tcp_socket`, `create_udp_socket`, `create_tcp_socket6`, `create_udp_socket6`, `create_unix_tcp_socket` and `create_unix_udp_socket`.
  - Methods: `bind`, `connect` (with an optional timeout in milliseconds), `listen`, `accept`, `send`, `send_to`, `recv`, `recv_from`, `get_option`, `set_option`, `get_error` and `close`.
  - Properties: `local_address`, `remote_address`, `send_timeout` and `recv_timeout`.
  - Failures raise `OSError`. An address whose family does not match the socket raises `ValueError`.
- `acid.tcp_server`: `TcpServer(name, recv_timeout)` is a threaded TCP server.
  - `bind(address)` returns a bool. `bind_all(addresses)` returns the addresses that failed, and if any address fails, none is kept listening.
  - `start()` and `stop()` control the server. It can also be used as a context manager.
  - Every accepted client is handed to `handle_client(client)` on its own thread. The client socket is closed when the handler returns.
- `acid.lexical_cast`: `lexical_cast(value, to)` converts between `int`, `float`, `bool` and `str`.
  - Strings are read by their leading numeric prefix.
  - Floats format with six decimals.
- `acid.util`: the helpers `get_current_ms`, `get_current_us`, `get_thread_id`, `backtrace` and `backtrace_to_string`.

## Install

```
pip install .
```

## Example

```python
from acid.address import IPv4Address
from acid.timer import TimerManager
from acid.uri import Uri

uri = Uri.create("https://example.com/add?a=1&b=2#aaa")
print(uri, uri.port)            # https://example.com/add?a=1&b=2#aaa 443

addr = IPv4Address.create("192.168.1.10", 8080)
print(addr.network_address(24))    # 192.168.1.0:8080
print(addr.broadcast_address(24))  # 192.168.1.255:8080

timers = TimerManager()
timers.add_timer(0, lambda: print("fired"), False)
for cb in timers.get_expired_callbacks():
    cb()
```

To serve clients, subclass `TcpServer` and override `handle_client`:

```python
from acid.address import IPv4Address
from acid.tcp_server import TcpServer

class Echo(TcpServer):
    def handle_client(self, client):
        while data := client.recv(4096):
            client.send(data)

server = Echo()
if server.bind(IPv4Address.create("127.0.0.1", 8080)):
    server.start()
```

## What it does not do

- There is no stream layer over sockets, such as helpers that read or write an exact number of bytes. Use `Socket.recv` and `Socket.send` directly.
- There is no event loop or coroutine scheduler. `TcpServer` uses one thread per listening socket and one thread per client.
- `TimerManager` only keeps timers and hands out the expired callbacks. Nothing runs them on its own.
- The package provides no command-line program.

## Tests

```
pip install .[test]
pytest
```