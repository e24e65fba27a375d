"""nodefleet - resource-aware launcher and supervisor for long-running worker nodes.

Sizes a fleet of memory-hungry workers against host resources, starts each one
in a detached screen session, and keeps an interactive console over the set.
"""

__version__ = "0.1.0"
