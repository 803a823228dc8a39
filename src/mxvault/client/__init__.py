"""HTTP transport for talking to Matrix homeservers.

Provides :class:`TransportClient`, a thin JSON GET/POST layer over
:class:`httpx.Client`. Every call is a single attempt; any network failure
or non-object body surfaces as :class:`~mxvault.exceptions.TransportError`.

Example::

    from mxvault.client import TransportClient

    with TransportClient() as client:
        flows = client.get_json("https://example.org", "/_matrix/client/r0/login")
"""

from mxvault.client.transport import TransportClient

__all__ = ["TransportClient"]
