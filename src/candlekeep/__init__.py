"""candlekeep-cli — command-line client for the CandleKeep document library.

Talks to the versioned CandleKeep REST API with a strict layered
architecture (``cli`` → ``core`` ← ``infra``).
"""

from candlekeep.version import __version__

__all__: list[str] = ["__version__"]
