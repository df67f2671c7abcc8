# minerkit

Building blocks for watching and controlling an Ethash mining farm:

- **`minerkit.common_data`** – hex and big-endian conversions, difficulty to
  target arithmetic, and human-readable hashrate and memory sizes.
- **`minerkit.fixed_hash`** – fixed-size byte hashes (`H64`, `H128`, `H160`,
  `H256`, `H512`) with ordering, bitwise operators and hex output.
- **`minerkit.log`** – channel-tagged log lines with coloured prefixes, thread
  names, and syslog / monochrome / stdout modes.
- **`minerkit.api_params`** – validation of JSON-RPC request members and
  request ids, raising `RequestError` with the JSON-RPC error code.
- **`minerkit.api_session`** – method dispatch and password authorization for
  one API client, talking to the farm through a `MinerBackend`.
- **`minerkit.api_stats`** – the `miner_getstat1` and `miner_getstatdetail`
  result shapes built from a `StatSnapshot`, and an HTML status page.
- **`minerkit.api_server`** – a TCP server answering newline-separated
  JSON-RPC 2.0 requests, or a plain HTTP `GET` with the HTML status page.

The package has no third-party dependencies.

## Formatting values

```python
from minerkit.common_data import get_formatted_hashes, get_formatted_memory, get_target_from_diff

get_formatted_hashes(1_500_000.0)   # '1.50 Mh'
get_formatted_memory(4 * 1024**3)   # '4.00 GB'
get_target_from_diff(1.0)           # 64 hex digits, '0x'-prefixed by default
```

`from_hex("...", strict=True)` raises `minerkit.common_data.BadHexCharacter`
on a character that is not a hex digit; without `strict` it returns `b""`.

## Fixed-size hashes

```python
from minerkit.fixed_hash import H256

h = H256.from_hex("00" * 31 + "01")
int(h)            # 1
h.abridged()      # first four bytes in hex followed by an ellipsis
h.incremented()   # big-endian increment, wrapping to zero at the top
```

## Logging

```python
from minerkit.log import Channel, LogConfig, log

log(Channel.NOTE, "Farm started", LogConfig(no_color=True, stdout=True))
```

`log` writes the line to stderr (or stdout with `stdout=True`) and returns the
text written. `syslog=True` drops the channel tag and timestamp.

## The monitoring API

The API reaches the farm only through an object implementing
`minerkit.api_session.MinerBackend` (statistics, connection management, nonce
scrambler, pausing miners, verbosity). `minerkit.api_stats.miner_stat1` and
`miner_stat_detail` turn a `StatSnapshot` into the results a backend would
return for `miner_getstat1` and `miner_getstatdetail`.

Supported methods: `api_authorize`, `miner_ping`, `miner_getstat1`,
`miner_getstatdetail`, `miner_getconnections`, `miner_getscramblerinfo`,
`miner_shuffle`, `miner_restart`, `miner_reboot`, `miner_addconnection`,
`miner_setactiveconnection`, `miner_removeconnection`,
`miner_setscramblerinfo`, `miner_pausegpu` and `miner_setverbosity`.

```python
from minerkit.api_server import ApiServer

password = "password"
server = ApiServer("127.0.0.1", 3333, password, backend)
server.start()
...
server.stop()
```

A negative port number starts the server in read-only mode: methods that
change the farm's state answer with "Method not available". Port zero leaves
the server disabled. When a password is set, clients must call
`api_authorize` with `{"psw": ...}` before any other method.

An HTTP `GET /` or `GET /getstat1` receives the HTML page from
`minerkit.api_stats.render_stat_html`; other methods get 405, other paths 404,
and the connection is closed after the reply.

`ApiSession.handle_line` and `ApiConnection.feed` can be used without sockets
to process requests directly.

## What this package does not do

It does not mine: there are no hashing kernels, device enumeration, pool
(stratum or getwork) clients, or background mining workers, and there is no
command-line program. The farm behind the API must be supplied by your own
`MinerBackend` implementation.