"""SenteChain: identifier-login demo wallet with an auth backend and wallet client."""

__version__ = "0.1.0"
