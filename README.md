# mobiletrojan

Building blocks for a Trojan-protocol VPN client, as a Python library.

## Modules

- `mobiletrojan.proto`: Trojan request headers (`trojan_request`),
  SOCKS5-style address encoding and parsing (`encode_address`,
  `parse_address`), and UDP-associate framing (`udp_associate_header`,
  `parse_udp_associate`, which returns a `UdpPacket`, returns `None` when more
  data is needed, and raises `InvalidProtocolError` on bad data).
- `mobiletrojan.status`: the connection life-cycle `ConnStatus` (connecting,
  established, peer closed, shut down, deregistered) and the `StatusProvider`
  mixin that drives a connection through it. Subclasses supply `close_conn`,
  `deregister` and `finish_send`.
- `mobiletrojan.waker`: `Wakers` hands out a (receive, send) pair of wakers per
  socket handle; calling a waker queues an `Event`, and `get_events` drains the
  queue, merging the events of each handle. `WakerMode` names which wakers to
  register.
- `mobiletrojan.dnscache`: `is_blocked` tells whether a name or one of its
  parent domains is in a blocked set; `message_key` keys a DNS message as
  `"name|TYPE"`; `DnsItem` caches the latest answer for a query, queues clients
  while no answer is known, and answers them from the cache until the TTL runs
  out.
- `mobiletrojan.packet`: parsing of raw IPv4/IPv6 TCP and UDP packets
  (`parse_packet`, `PacketInfo`), private-address detection (`is_private`),
  `PacketFilter.classify` deciding a `PacketAction` for a packet, `Traffic`
  byte counters with `calculate_speed`, `digest_pass` (hex SHA-224 of the
  password), `speed_and_unit`, `format_speed` and `show_info`.
- `mobiletrojan.app`: `BnetConfig`, `IpcRequest`, `InitData` and
  `MobileTrojanApp`, which stores the config as `config.json` in its cache
  directory and carries out the IPC calls `startInit`, `startBnet` and
  `stopBnet` through a platform object you provide.

## Examples

Build the header a client sends when it opens a proxied TCP stream:

```python
from mobiletrojan.packet import digest_pass
from mobiletrojan.proto import CONNECT, trojan_request

password = "password"
header = trojan_request(CONNECT, digest_pass(password), "93.184.216.34", 443)
```

Frame a UDP datagram and read it back:

```python
from mobiletrojan.proto import parse_udp_associate, udp_associate_header

payload = b"hello"
frame = udp_associate_header("10.1.2.3", 53, len(payload)) + payload
packet = parse_udp_associate(frame)
packet.payload   # b"hello"
packet.offset    # 16, the bytes this frame took
```

Decide whether a name is resolved through the tunnel:

```python
from mobiletrojan.dnscache import is_blocked

is_blocked({"example.com"}, "www.example.com.")   # True
is_blocked({"example.com"}, "example.org.")       # False
```

Check a destination and format transfer speeds:

```python
from mobiletrojan.packet import is_private, speed_and_unit

is_private("192.168.1.10", 80)   # True
speed_and_unit(2048.0)           # (2.0, "MB")
```

Drive the app state. `platform` is any object with `get_init_data()`,
`start_vpn(app, dns, gateway)` and `stop_vpn()`; the second argument receives
the scripts meant for the web view:

```python
from mobiletrojan.app import MobileTrojanApp

scripts = []
app = MobileTrojanApp(platform, scripts.append, cache_dir="/tmp/cache")
app.set_error("serviceStarted")
scripts   # ["window.setError('serviceStarted');"]
```

## What this package does not do

It opens no network connections of its own: there is no TLS connection to the
proxy server, no pool of connections, no DNS resolver or DNS server loop, and
no tun device or event loop that runs a tunnel. It has no command-line program.
These pieces are meant to be used by code that provides those parts.

## Tests

The test suite uses pytest and is installed with the `test` extra.