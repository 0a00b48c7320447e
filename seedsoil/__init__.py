"""
seedsoil: capture, distill, and keep knowledge alive by review.

Captured text ("seeds") is distilled by an LLM into an essence, a few
nuggets and an action. Each seed's strength decays daily; reviewing
restores it, and seeds that fade or fail review are buried until
resurrected.

Basic usage:
    from seedsoil import Session

    with Session() as session:
        session.start()
        session.capture("Text worth remembering")
        session.run_pulse()
        for item in session.review_queue():
            print(item.seed.essence)
"""

__version__ = "0.3.0"

from .session import IntakeResult, Session
from .types import Collection, Item, Seed, Soil, Status
from .pulse import ItemOutcome, PulseReport, SynthesisOutcome
from .errors import ErrorKind, ProviderError, RemoteStoreError, SeedSoilError

__all__ = [
    "Session",
    "IntakeResult",
    "Item",
    "Seed",
    "Soil",
    "Status",
    "Collection",
    "PulseReport",
    "ItemOutcome",
    "SynthesisOutcome",
    "ErrorKind",
    "SeedSoilError",
    "ProviderError",
    "RemoteStoreError",
]
