"""
Host server adapters.

Each adapter exposes a host library's connection object through the
``Connection`` interface the interceptor consumes.
"""
