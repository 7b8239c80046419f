"""iptrules - deterministic rule rendering and chain hashing for iptables-restore."""

__version__ = "0.1.0"
