"""Network primitives: local address lookup, subnet scanning and liveness probing."""

from .local_address import get_local_ipv4, subnet_prefix
from .prober import LivenessProber, probe_outcomes
from .scanner import SubnetScanner

__all__ = [
    "get_local_ipv4",
    "subnet_prefix",
    "LivenessProber",
    "probe_outcomes",
    "SubnetScanner",
]
