# cacheproxy

A small forwarding HTTP proxy. It accepts proxy-style `GET` requests
(`GET http://host[:port]/path HTTP/1.1`), sends `GET /path HTTP/1.1` with
`Connection: Close` to the upstream server, relays the reply to the client
as it arrives and keeps a copy in an in-memory cache. A later request for
the same host, port and path is answered from the cache.

The first time a cached response is served, a `Cached: True` header is
added right after the status line and the body is cut to its
`Content-Length`. Responses without a `Content-Length` header are served
from the cache unchanged. Responses of 1 MiB or more are relayed but not
cached.

## Installation

```
pip install .
```

## Running

```
cacheproxy <port> <mode> <n>
```

- `port` – the port to listen on, 1 to 65535.
- `mode` – how entries are evicted: `FIFO` (oldest inserted goes first) or
  `LRU` (least recently used goes first).
- `n` – the number of responses the cache holds, 0 to 1024. With `0`,
  caching is switched off and every request goes upstream.

For example:

```
cacheproxy 8080 LRU 16
```

Invalid arguments print a usage line or an error message to standard error
and exit with status 1. Each handled request logs `Hit!` or `Miss!` to
standard error; when caching is on, the current contents of the cache are
then written to standard output. Malformed requests and unreachable
upstream hosts are reported on standard error and the client connection is
closed.

Requests must use the `GET` method and `HTTP/1.1`; a missing port means
port 80. Client connections get a five-second read timeout.

## Using it as a library

The cache can be used on its own:

```python
from cacheproxy.cache import Cache, CacheMode, mark_cached

cache = Cache(CacheMode.LRU, 2)
cache.miss("example.com", "index.html", 80, response_bytes)

entry = cache.find("example.com", "index.html", 80)
if entry is not None:
    body = cache.hit(entry)   # LRU moves the entry to the front
    mark_cached(entry)        # adds the "Cached: True" header once
```

`create_cache(mode, size)` returns `None` for size 0, and
`Cache.describe()` returns the text dump the server prints.

`cacheproxy.request.parse_request` turns raw request bytes into a
`ProxyRequest` (raising `BadRequest` on malformed input), and
`read_request` does the same from a socket. `cacheproxy.netio` holds the
socket helpers (`Listener`, `connect`, `read_n_bytes`, `write_n_bytes`,
`pass_n_bytes`). `cacheproxy.proxy.serve` runs the server from a
`ProxyConfig` built by `parse_args`.

## Limits

- Connections are served one at a time; there is no concurrency.
- Only plain HTTP `GET` is supported: no `CONNECT`, no HTTPS, and the
  client's own request headers are not forwarded upstream.
- Cached entries never expire; they leave the cache only by eviction.

## Tests

```
pip install .[test]
pytest
```