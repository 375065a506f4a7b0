"""
USIM - server-driven UI over HTTP.

Screens are Python classes that build a component tree on the server;
the client renders the flattened tree and sends events back.
"""

__version__ = "0.4.0"
