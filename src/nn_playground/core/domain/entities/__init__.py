"""Domain entities.

These are pure-ish structures used by the core. Keep filesystem/network I/O in adapters.
`architecture` and `model` are imported explicitly (they depend on domain utils).
"""

from .dataset import *
from .layers import *
