# SPDX-License-Identifier: MIT
# Copyright (c) 2026 FlightSurety Contributors

"""FlightSurety - flight delay insurance settled by oracle consensus.

Passengers insure a flight against delay. Claims are settled through a
decentralized oracle consensus that determines flight status without
trusting any single data source.

Architecture:
  Ledger state machine (single owned state, one transition per operation)
    → Airline governance (multi-party admission quorum)
    → Insurance ledger (purchase, settlement credit, withdrawal)
    → Oracle registry + consensus (shard indexes, majority aggregation)
  Oracle responder (asyncio service voting for every identity it owns)
  HTTP query surface (Starlette, served by uvicorn)

Server entry point: ``flightsurety-server``
"""

__version__ = "1.0.0"
