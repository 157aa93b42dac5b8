"""icmpcheck: periodic ICMP reachability and latency probing."""

__version__ = "0.1.0"
