"""Resource models, service NAT rules and a pod exec client for a small cluster."""

__version__ = "0.1.0"