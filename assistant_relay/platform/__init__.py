"""Service infrastructure: settings, observability, upstream clients and the HTTP server."""
