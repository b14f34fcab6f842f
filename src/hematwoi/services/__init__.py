"""Domain services for the debt ledger.

Import the submodules directly (``hematwoi.services.debt_ledger``); nothing is
re-exported here so models can be imported without pulling in the services.
"""
