"""Request, proposal, transaction, query and block-event building for a UTXO and smart-contract blockchain node."""

__version__ = "0.1.0"

__all__ = ["acl", "options", "event", "request", "transaction", "proposal", "query", "client"]