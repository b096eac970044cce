"""
idemgate — idempotent writes for messaging APIs.

    from idemgate import coordinator as C  # At-most-once execution
    from idemgate import ledger as D       # Durable claim ledger
    from idemgate import keystore as K     # Fast replay cache
    from idemgate import envelope as R     # Replayable responses
    from idemgate import sweep as W        # Expired record purge
"""

from kungfu import Result, Ok, Error

from idemgate import envelope
from idemgate import keystore
from idemgate import ledger
from idemgate import coordinator
from idemgate import sweep
from idemgate import graph
from idemgate.clock import Clock, SystemClock, MockClock

__version__ = "0.1.0"

__all__ = (
    "envelope",
    "keystore",
    "ledger",
    "coordinator",
    "sweep",
    "graph",
    "Clock",
    "SystemClock",
    "MockClock",
    "Result",
    "Ok",
    "Error",
)
